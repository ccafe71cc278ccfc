"""
Security Middleware: Rate Limiting + Response Headers
======================================================

Rate Limiting:
- In-memory token bucket per client IP and tier
- 429 JSON response when exceeded
- Login and board moves get their own tiers

Headers:
- nosniff / SAMEORIGIN / referrer policy on every response
- no-store unless a route sets its own Cache-Control
"""

import os
import time
import logging
import functools
from collections import defaultdict
from threading import Lock

from flask import request, jsonify

log = logging.getLogger("portal.security")

# ═══════════════════════════════════════════════════════════════════════════════
# Rate Limiting
# ═══════════════════════════════════════════════════════════════════════════════

class RateLimiter:
    """Token bucket per key."""

    def __init__(self):
        self._buckets = defaultdict(lambda: {"tokens": None, "last_refill": time.time()})
        self._lock = Lock()

    def check(self, key: str, max_tokens: int = 60, refill_rate: float = 1.0) -> bool:
        """True if the request is allowed, False if rate limited."""
        with self._lock:
            bucket = self._buckets[key]
            now = time.time()
            if bucket["tokens"] is None:
                bucket["tokens"] = max_tokens
            elapsed = now - bucket["last_refill"]
            bucket["tokens"] = min(max_tokens, bucket["tokens"] + elapsed * refill_rate)
            bucket["last_refill"] = now

            if bucket["tokens"] >= 1:
                bucket["tokens"] -= 1
                return True
            return False

    def cleanup(self, max_age: int = 3600):
        """Remove buckets idle for more than max_age seconds."""
        now = time.time()
        with self._lock:
            stale = [k for k, v in self._buckets.items() if now - v["last_refill"] > max_age]
            for k in stale:
                del self._buckets[k]

    def reset(self):
        with self._lock:
            self._buckets.clear()


_limiter = RateLimiter()

RATE_LIMITS = {
    "default": {"max_tokens": 60, "refill_rate": 2.0},   # 120/min
    "api":     {"max_tokens": 30, "refill_rate": 1.0},   # 60/min
    "auth":    {"max_tokens": 5,  "refill_rate": 0.1},   # 6/min (login attempts)
    "board":   {"max_tokens": 20, "refill_rate": 2.0},   # drag bursts
}


def rate_limit(tier: str = "default"):
    """Decorator to apply rate limiting to a route."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            if os.environ.get("DISABLE_RATE_LIMIT", "").lower() == "true":
                return f(*args, **kwargs)

            ip = request.remote_addr or "unknown"
            limits = RATE_LIMITS.get(tier, RATE_LIMITS["default"])
            if not _limiter.check(f"{ip}:{tier}", **limits):
                log.warning("Rate limit exceeded: %s tier=%s", ip, tier)
                return jsonify({"ok": False, "error": "Rate limit exceeded. Please try again shortly."}), 429
            return f(*args, **kwargs)
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# Security Headers Middleware
# ═══════════════════════════════════════════════════════════════════════════════

def add_security_headers(response):
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if not response.headers.get("Cache-Control"):
        response.headers["Cache-Control"] = "no-store"
    return response


def init_security(app):
    """Initialize security middleware on the Flask app."""
    app.after_request(add_security_headers)
    log.info("Security middleware initialized: rate limiting, security headers")
