"""
secrets.py: Centralized settings and credentials for Supplier Portal

Single source of truth for every env-driven setting the portal reads.

Env vars:
  NGAUGE_BASE_URL         NGauge API root (forms, users)
  NGAUGE_APP_NAME         value sent as x-web-app
  NGAUGE_APP_VERSION      value sent as x-web-app-version
  NGAUGE_TIMEOUT          upstream request timeout, seconds
  SECRET_KEY              Flask session signing key
  PORTAL_BOARD_READONLY   render status boards with dragging disabled
  PORTAL_DASHBOARD_SAVE   write dashboard board moves back to the PO item status
  PORTAL_PAGE_SIZE        rows per table page

Security:
  - Sensitive values are never logged in full (masked)
  - Health endpoint shows which settings are set, not their values
  - User bearer tokens are NOT settings; they arrive per request
"""

import os
import logging

log = logging.getLogger("portal.secrets")

# ─── Setting Definitions ────────────────────────────────────────────────────

_REGISTRY = {
    # NGauge upstream
    "ngauge_base_url": {
        "env": "NGAUGE_BASE_URL",
        "required": True,
        "desc": "NGauge API base URL",
        "used_by": ["ngauge"],
        "default": "https://nooms.infoveave.app/api/v10",
    },
    "ngauge_app_name": {
        "env": "NGAUGE_APP_NAME",
        "required": False,
        "desc": "Client app name header (x-web-app)",
        "used_by": ["ngauge"],
        "default": "Infoveave",
    },
    "ngauge_app_version": {
        "env": "NGAUGE_APP_VERSION",
        "required": False,
        "desc": "Client app version header (x-web-app-version)",
        "used_by": ["ngauge"],
        "default": "0.1.0",
    },
    "ngauge_timeout": {
        "env": "NGAUGE_TIMEOUT",
        "required": False,
        "desc": "Upstream request timeout in seconds",
        "used_by": ["ngauge"],
        "default": "15",
    },
    # Dashboard
    "secret_key": {
        "env": "SECRET_KEY",
        "required": True,
        "desc": "Flask session signing key",
        "used_by": ["dashboard"],
        "sensitive": True,
        "default": "supplier-portal-dev",
    },
    "board_readonly": {
        "env": "PORTAL_BOARD_READONLY",
        "required": False,
        "desc": "Disable drag-and-drop on status boards",
        "used_by": ["board"],
        "default": "false",
    },
    "dashboard_board_save": {
        "env": "PORTAL_DASHBOARD_SAVE",
        "required": False,
        "desc": "Save dashboard board moves upstream (off: moves stay on the board)",
        "used_by": ["board"],
        "default": "false",
    },
    "page_size": {
        "env": "PORTAL_PAGE_SIZE",
        "required": False,
        "desc": "Rows per page on table screens",
        "used_by": ["dashboard"],
        "default": "50",
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_key(name: str) -> str:
    """Get a setting by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown setting requested: %s", name)
        return ""

    val = os.environ.get(entry["env"], "")
    if not val and "default" in entry:
        val = entry["default"]
    return val


def get_int(name: str, fallback: int = 0) -> int:
    """Integer setting. Bad values log a warning and use the registry default."""
    raw = get_key(name)
    try:
        return int(raw)
    except (TypeError, ValueError):
        default = _REGISTRY.get(name, {}).get("default")
        log.warning("Setting %s=%r is not an integer, using %s", name, raw, default or fallback)
        try:
            return int(default)
        except (TypeError, ValueError):
            return fallback


def get_bool(name: str) -> bool:
    return get_key(name).strip().lower() in ("true", "1", "yes", "on")


def mask(value: str) -> str:
    """Mask a secret for safe logging. Shows first 8 chars."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


def validate_all() -> dict:
    """Validate all settings. Returns status report."""
    results = {}
    warnings = []
    for name, entry in _REGISTRY.items():
        val = get_key(name)
        is_set = bool(val)
        from_env = bool(os.environ.get(entry["env"]))
        results[name] = {
            "set": is_set,
            "from_env": from_env,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if not entry.get("sensitive") else ("✅ set" if is_set else "❌ not set"),
            "required": entry.get("required", False),
            "used_by": entry["used_by"],
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED setting missing: {entry['env']} ({entry['desc']})")
        if entry.get("sensitive") and not from_env:
            warnings.append(f"{entry['env']} is using the built-in default, set it in production")

    return {
        "secrets": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def startup_check():
    """Run on startup. Logs warnings for missing or defaulted settings."""
    report = validate_all()
    log.info("Settings: %d/%d configured (%d from env)", report["set"], report["total"],
             sum(1 for r in report["secrets"].values() if r["from_env"]))
    for w in report["warnings"]:
        log.warning("SETTING: %s", w)
    return report
