"""
startup_checks.py: Runtime Self-Test on App Boot

Runs when the app starts. Catches misconfiguration before the first user
does:

  1. Settings: required settings present, base URL well-formed
  2. Form map: every table has a unique form id
  3. Route integrity: blueprint routes registered, no duplicate endpoints
  4. Gateway: the app has a gateway factory and a board registry
"""

import logging

log = logging.getLogger("portal.startup")

REQUIRED_ENDPOINTS = (
    "dashboard.home", "dashboard.api_board", "dashboard.api_board_move",
    "dashboard.work_order_page", "dashboard.api_health",
)


def run_startup_checks(app=None) -> dict:
    """Run all startup validation checks. Call from app.py after blueprint registration.

    Returns:
        {"passed": int, "failed": int, "warnings": int, "details": [...]}
    """
    results = {"passed": 0, "failed": 0, "warnings": 0, "details": []}

    def _pass(msg):
        results["passed"] += 1
        results["details"].append(("PASS", msg))
        log.info("✅ %s", msg)

    def _fail(msg):
        results["failed"] += 1
        results["details"].append(("FAIL", msg))
        log.error("❌ STARTUP CHECK FAILED: %s", msg)

    def _warn(msg):
        results["warnings"] += 1
        results["details"].append(("WARN", msg))
        log.warning("⚠️  %s", msg)

    # ── 1. Settings ───────────────────────────────────────────────────────────
    try:
        from supplier_portal.core.secrets import validate_all, get_key
        report = validate_all()
        missing = [w for w in report["warnings"] if w.startswith("REQUIRED")]
        for w in missing:
            _fail(w)
        for w in report["warnings"]:
            if w not in missing:
                _warn(w)
        base = get_key("ngauge_base_url")
        if base.startswith(("http://", "https://")):
            _pass(f"NGauge base URL: {base}")
        else:
            _fail(f"NGAUGE_BASE_URL is not an http(s) URL: {base!r}")
    except Exception as e:
        _fail(f"Settings check error: {e}")

    # ── 2. Form Map ───────────────────────────────────────────────────────────
    try:
        from supplier_portal.integrations.ngauge import FORMS
        ids = list(FORMS.values())
        dupes = {i for i in ids if ids.count(i) > 1}
        if dupes:
            _fail(f"Duplicate NGauge form ids: {sorted(dupes)}")
        else:
            _pass(f"NGauge form map: {len(FORMS)} tables")
    except Exception as e:
        _fail(f"Form map check error: {e}")

    # ── 3. Route Integrity (if app provided) ──────────────────────────────────
    if app:
        try:
            rules = [r for r in app.url_map.iter_rules()
                     if r.endpoint and not r.endpoint.startswith("static")]
            _pass(f"Flask routes registered: {len(rules)}")
            endpoints = {r.endpoint for r in rules}
            absent = [e for e in REQUIRED_ENDPOINTS if e not in endpoints]
            if absent:
                _fail(f"Missing route endpoints: {absent}")
        except Exception as e:
            _warn(f"Route check skipped: {e}")

        # ── 4. Gateway + Boards ───────────────────────────────────────────────
        if callable(app.extensions.get("ngauge")):
            _pass("NGauge gateway factory configured")
        else:
            _fail("No NGauge gateway factory on app.extensions['ngauge']")
        if app.extensions.get("boards") is None:
            _fail("No board registry on app.extensions['boards']")

    # ── Summary ──────────────────────────────────────────────────────────────
    total = results["passed"] + results["failed"] + results["warnings"]
    if results["failed"] > 0:
        log.error("STARTUP: %d/%d checks FAILED, app may not work correctly",
                  results["failed"], total)
    else:
        log.info("STARTUP: All %d checks passed (%d warnings)",
                 results["passed"], results["warnings"])

    return results
