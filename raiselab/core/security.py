"""
Security - Admin Access Gate + Rate Limiting + Security Headers
===============================================================

Access gate:
- authorize_admin() is the policy: identity first, then role
- No identity → /auth/login, role other than "admin" → /
- A failed role lookup counts as "not admin"
- admin_required wraps routes and turns a denial into a redirect

Rate Limiting:
- In-memory token bucket per IP address
- Configurable limits per endpoint group
- 429 response when exceeded
"""

import os
import time
import logging
import functools
from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from flask import request, session, jsonify, redirect

log = logging.getLogger("raiselab.security")

ADMIN_ROLE = "admin"
LOGIN_PATH = "/auth/login"
HOME_PATH = "/"

# ═══════════════════════════════════════════════════════════════════════════════
# Access Gate
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_to: Optional[str] = None
    identity: Optional[str] = None


def authorize_admin(identity_lookup: Callable[[], Optional[str]],
                    role_lookup: Callable[[str], Optional[str]]) -> AccessDecision:
    """Decide whether the current request may see admin pages.

    The role lookup only runs once an identity has been resolved.
    """
    try:
        identity = identity_lookup()
    except Exception as e:
        log.warning("Identity lookup failed: %s", e)
        identity = None
    if not identity:
        return AccessDecision(allowed=False, redirect_to=LOGIN_PATH)

    try:
        role = role_lookup(identity)
    except Exception as e:
        log.warning("Role lookup failed for %s: %s", identity, e)
        role = None
    if role != ADMIN_ROLE:
        log.info("Access denied for %s (role=%s)", identity, role)
        return AccessDecision(allowed=False, redirect_to=HOME_PATH, identity=identity)

    return AccessDecision(allowed=True, identity=identity)


def current_identity() -> Optional[str]:
    """Profile id of the signed-in user, if the session still maps to a profile."""
    from raiselab.core.db import get_profile
    user_id = session.get("user_id")
    if not user_id:
        return None
    return user_id if get_profile(user_id) else None


def lookup_role(identity: str) -> Optional[str]:
    from raiselab.core.db import get_role
    return get_role(identity)


def admin_required(f):
    """Route decorator: render only for admins, redirect everyone else."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        decision = authorize_admin(current_identity, lookup_role)
        if not decision.allowed:
            return redirect(decision.redirect_to)
        return f(*args, **kwargs)
    return wrapper


# ═══════════════════════════════════════════════════════════════════════════════
# Rate Limiting
# ═══════════════════════════════════════════════════════════════════════════════

class RateLimiter:
    """Simple in-memory rate limiter using token bucket algorithm."""

    def __init__(self):
        self._buckets = defaultdict(lambda: {"tokens": None, "last_refill": time.time()})
        self._lock = Lock()

    def check(self, key: str, max_tokens: int = 60, refill_rate: float = 1.0) -> bool:
        """Check if request is allowed. Returns True if allowed, False if rate limited.

        Args:
            key: Unique key for the bucket (usually IP + endpoint group)
            max_tokens: Maximum burst capacity
            refill_rate: Tokens added per second
        """
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

    def reset(self):
        with self._lock:
            self._buckets.clear()


_limiter = RateLimiter()


RATE_LIMITS = {
    "default":     {"max_tokens": 60,  "refill_rate": 2.0},   # 120/min
    "auth":        {"max_tokens": 5,   "refill_rate": 0.1},   # 6/min (login attempts)
    "heavy":       {"max_tokens": 10,  "refill_rate": 0.2},   # 12/min (PDF gen)
}


def rate_limit(tier: str = "default"):
    """Decorator to apply rate limiting to a route."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            if os.environ.get("DISABLE_RATE_LIMIT", "").lower() == "true":
                return f(*args, **kwargs)

            ip = request.remote_addr or "unknown"
            key = f"{ip}:{tier}"
            limits = RATE_LIMITS.get(tier, RATE_LIMITS["default"])

            if not _limiter.check(key, **limits):
                log.warning("Rate limit exceeded: %s tier=%s", ip, tier)
                return jsonify({"ok": False, "error": "Rate limit exceeded. Please try again shortly."}), 429

            return f(*args, **kwargs)
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# Security Headers Middleware
# ═══════════════════════════════════════════════════════════════════════════════

def add_security_headers(response):
    """Add security headers to every response."""
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if not response.headers.get("Cache-Control"):
        response.headers["Cache-Control"] = "no-store"
    return response


def init_security(app):
    """Initialize security middleware on the Flask app."""
    app.after_request(add_security_headers)
    log.info("Security middleware initialized: access gate, rate limiting, security headers")
