"""
Supplier Portal Dashboard
Blueprint, auth, request logging and shared helpers for the route modules.

Auth: every page and API call needs the user's NGauge bearer token, either
as an ``Authorization: Bearer`` header (API clients) or stored in the
Flask session by /login (browser). The token is forwarded upstream as-is.
"""
import functools
import hashlib
import logging
import time
import uuid
from urllib.parse import urlencode

from flask import (Blueprint, current_app, g, jsonify, redirect, render_template_string,
                   request, session, url_for, flash)

from supplier_portal.api.templates import (BASE_CSS, PAGE_ERROR, PAGE_FORBIDDEN, PAGE_LOGIN,
                                           PAGE_TABLE)
from supplier_portal.core.records import (HIDDEN_COLUMNS, badge_class, format_date, highlight,
                                          is_date_column, matches, paginate, step_number,
                                          table_columns)
from supplier_portal.core.secrets import get_int, validate_all
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.dashboard")

bp = Blueprint("dashboard", __name__)

NAV = (
    ("/", "Dashboard"),
    ("/purchase-order", "Purchase Orders"),
    ("/work-order", "Work Orders"),
    ("/shipment", "Shipments"),
    ("/delivery", "Deliveries"),
)


# ── Request-level structured logging ────────────────────────────────────────

@bp.before_app_request
def _log_request_start():
    g._start_time = time.time()


@bp.after_app_request
def _log_request_end(response):
    start = g.get("_start_time")
    if start is not None:
        duration_ms = round((time.time() - start) * 1000, 1)
        # Skip static/health spam
        if request.path not in ("/api/health",) and not request.path.startswith("/static"):
            log.info("%s %s → %d (%.0fms)",
                     request.method, request.path, response.status_code, duration_ms,
                     extra={"route": request.path, "method": request.method,
                            "status": response.status_code, "duration_ms": duration_ms})
    return response


# ═══════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════

def _bearer_from_header() -> str:
    auth = request.headers.get("Authorization", "")
    if auth[:7].lower() == "bearer ":
        return auth[7:].strip()
    return ""


def clean_token(raw: str) -> str:
    raw = (raw or "").strip()
    if raw[:7].lower() == "bearer ":
        raw = raw[7:].strip()
    return raw


def is_api_request() -> bool:
    return request.path.startswith("/api/")


def auth_required(f):
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_from_header() or session.get("token", "")
        if not token:
            if is_api_request():
                return jsonify({"ok": False, "error": "Authorization required"}), 401
            return redirect(url_for("dashboard.login", next=request.path))
        g.token = token
        return f(*args, **kwargs)
    return decorated


# ── Roles ───────────────────────────────────────────────────────────────────
# NGauge roleId 5 is the buyer: it issues purchase orders and watches the
# supplier's progress, but never edits work orders or shipments.

BUYER_ROLE_ID = 5


def current_role_id():
    """Role of the signed-in user. Cached in the session at /login, per request otherwise."""
    if "role_id" not in g:
        if session.get("token") and session.get("token") == g.get("token") and "role_id" in session:
            g.role_id = session["role_id"]
        else:
            g.role_id = gateway().current_user().role_id
    return g.role_id


def is_buyer() -> bool:
    return str(current_role_id()) == str(BUYER_ROLE_ID)


def forbidden(message: str, back_url: str = "/"):
    log.info("Refused %s %s: %s", request.method, request.path, message)
    if is_api_request():
        return jsonify({"ok": False, "error": message}), 403
    return render(PAGE_FORBIDDEN, title="Not available", message=message, back_url=back_url), 403


def vendor_only(f):
    """Supplier-side write routes; buyers get 403. Use under @auth_required."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if is_buyer():
            return forbidden("Buyers have read-only access to this page")
        return f(*args, **kwargs)
    return decorated


def buyer_only(f):
    """Purchase order entry; suppliers get 403. Use under @auth_required."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not is_buyer():
            return forbidden("Only buyers can create purchase orders", back_url="/purchase-order")
        return f(*args, **kwargs)
    return decorated


# ═══════════════════════════════════════════════════════════════════════
# Shared helpers for route modules
# ═══════════════════════════════════════════════════════════════════════

def gateway():
    """NGauge client for the current request's token."""
    return current_app.extensions["ngauge"](g.get("token", ""))


def board_registry():
    return current_app.extensions["boards"]


def session_key() -> str:
    """Scope for per-user boards: the browser session, else the bearer token."""
    if "sid" in session:
        return session["sid"]
    token = g.get("token", "")
    if token and not session.get("token"):
        return "tok:" + hashlib.sha256(token.encode()).hexdigest()[:16]
    session["sid"] = uuid.uuid4().hex
    return session["sid"]


def invalidate_boards(*pages):
    """Forget this session's cached boards after a portal edit; the next GET reloads."""
    board_registry().discard(session_key(), pages or None)


def page_size() -> int:
    return max(1, get_int("page_size", 50))


def api_error(e: NGaugeError):
    status = e.status if 400 <= (e.status or 0) < 600 else 502
    return jsonify(e.to_dict()), status


@bp.app_errorhandler(NGaugeError)
def _handle_ngauge_error(e):
    log.warning("Upstream error on %s %s: %s", request.method, request.path, e.message)
    if is_api_request():
        return api_error(e)
    if e.status == 401:
        session.pop("token", None)
        flash("Your session expired, please sign in again", "error")
        return redirect(url_for("dashboard.login", next=request.path))
    return render(PAGE_ERROR, title="Upstream error", error=e), 502


STATUS_KEYS = ("status", "po_status", "wo_status", "shipment_status", "delivery_status")


def render_cell(key, value, term: str = "") -> str:
    """HTML for one table cell: step/status badges, dates, search highlight."""
    if key == "step" and step_number(value):
        n = min(step_number(value), 5)
        return f'<span class="step step-{n}">{highlight(value, term)}</span>'
    if key in STATUS_KEYS or str(key).endswith("_status"):
        if value in (None, ""):
            return "-"
        return f'<span class="{badge_class(value)}">{highlight(value, term)}</span>'
    if is_date_column(key):
        return highlight(format_date(value), term)
    if value in (None, ""):
        return "-"
    return highlight(value, term)


def render_table(heading, rows, columns=None, children=None, child_hidden=None,
                 actions=None, toolbar_extra="", title=None, **kw):
    """Search + paginate ``rows`` and render them with PAGE_TABLE.

    ``children(row)`` returns nested rows; a parent also matches a search
    when any of its children does.
    """
    q = request.args.get("q", "").strip()
    if q:
        rows = [r for r in rows
                if matches(r, q) or (children and any(matches(c, q) for c in children(r)))]
    page = paginate(rows, request.args.get("page", 1), page_size())
    hidden = child_hidden or HIDDEN_COLUMNS

    def qs(**overrides):
        args = request.args.to_dict()
        args.update({k: v for k, v in overrides.items() if v is not None})
        return urlencode(args)

    keep = {k: v for k, v in request.args.items() if k not in ("q", "page")}
    return render(
        PAGE_TABLE,
        title=title or heading,
        heading=heading,
        columns=columns or table_columns(page["rows"]),
        page=page,
        q=q,
        qs=qs,
        keep_params=keep,
        cell=lambda k, v: render_cell(k, v, q),
        actions=actions,
        children=children,
        child_columns=lambda kids: table_columns(kids, hidden=hidden),
        toolbar_extra=toolbar_extra,
        **kw,
    )


def render(content, **kw):
    nav = "".join(
        f'<a href="{href}" class="hdr-btn{" hdr-active" if _nav_active(href) else ""}">{label}</a>'
        for href, label in NAV
    )
    html = f"""<!DOCTYPE html><html><head><meta charset="utf-8"><meta name="viewport" content="width=device-width,initial-scale=1">
<title>Supplier Portal{{% if title %}} · {{{{ title }}}}{{% endif %}}</title>
<style>{BASE_CSS}</style></head><body>
<div class="hdr"><h1><a href="/" style="color:inherit"><span>Supplier</span> Portal</a></h1>
<div class="hdr-right">{nav}
{{% if session.get('user') %}}<span class="hdr-user">{{{{ session['user'] }}}}</span>{{% endif %}}
{{% if session.get('token') %}}<a href="/logout" class="hdr-btn hdr-warn">Sign out</a>{{% endif %}}
</div></div>
<div class="ctr">
{{% with messages = get_flashed_messages(with_categories=true) %}}
 {{% for cat, msg in messages %}}<div class="alert al-{{{{ 's' if cat=='success' else 'e' if cat=='error' else 'i' }}}}">{{{{ msg }}}}</div>{{% endfor %}}
{{% endwith %}}
""" + content + """
</div></body></html>"""
    kw.setdefault("title", "")
    return render_template_string(html, **kw)


def _nav_active(href: str) -> bool:
    if href == "/":
        return request.path == "/"
    return request.path.startswith(href)


# ═══════════════════════════════════════════════════════════════════════
# Session routes
# ═══════════════════════════════════════════════════════════════════════

from supplier_portal.core.security import rate_limit  # noqa: E402


@bp.route("/login", methods=["GET", "POST"])
@rate_limit("auth")
def login():
    next_url = request.values.get("next") or "/"
    if not next_url.startswith("/") or next_url.startswith("//"):
        next_url = "/"
    if request.method == "GET":
        return render(PAGE_LOGIN, title="Sign in", next_url=next_url)

    token = clean_token(request.form.get("token", ""))
    if not token:
        flash("Paste your NGauge access token to continue", "error")
        return render(PAGE_LOGIN, title="Sign in", next_url=next_url), 400
    try:
        user = current_app.extensions["ngauge"](token).current_user()
    except NGaugeError as e:
        log.warning("Login rejected by NGauge: %s", e.message)
        flash(f"Sign-in failed: {e.message}", "error")
        return render(PAGE_LOGIN, title="Sign in", next_url=next_url), 401

    session["token"] = token
    session["user"] = user.display_name
    session["role_id"] = user.role_id
    session.setdefault("sid", uuid.uuid4().hex)
    log.info("User signed in: %s", user.user_name or user.email, extra={"user": user.user_name})
    return redirect(next_url)


@bp.route("/logout")
def logout():
    sid = session.get("sid")
    if sid:
        board_registry().discard(sid)
    session.clear()
    flash("Signed out", "info")
    return redirect(url_for("dashboard.login"))


@bp.route("/api/me")
@auth_required
def api_me():
    try:
        user = gateway().current_user()
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "user": user.to_dict(),
                    "buyer": str(user.role_id) == str(BUYER_ROLE_ID)})


@bp.route("/api/health")
def api_health():
    report = validate_all()
    status = "ok" if not any(w.startswith("REQUIRED") for w in report["warnings"]) else "degraded"
    return jsonify({
        "status": status,
        "settings": {"set": report["set"], "total": report["total"]},
        "boards": len(board_registry()),
    })


# Route modules register on ``bp`` at import time
from supplier_portal.api.modules import (  # noqa: E402,F401
    routes_board, routes_orders, routes_work_orders, routes_shipments, routes_deliveries,
)
