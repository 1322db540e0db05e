"""
settings.py - Centralized runtime configuration for Raise Lab Quotations

Single source of truth for every environment-driven setting.

Env vars:
  SECRET_KEY              - Flask session signing key
  ADMIN_EMAIL             - Seed admin account (created on first boot)
  ADMIN_PASSWORD          - Seed admin password
  QUOTE_LOGO_URL          - Quotation logo URL (falls back to data/assets/)
  QUOTE_FONT_PATH         - TTF used for quotation text (₹ prints as Rs. without one)
  QUOTE_FONT_BOLD_PATH    - Bold TTF companion
  IMAGE_FETCH_TIMEOUT     - Per-request timeout for item images, seconds
  IMAGE_FETCH_WORKERS     - Thread pool size for the image fan-out

Security:
  - Sensitive values are never logged in full (masked)
  - Health endpoint shows which settings are set (not values)
"""

import os
import logging

log = logging.getLogger("raiselab.settings")

# ─── Setting Definitions ────────────────────────────────────────────────────

_REGISTRY = {
    "secret_key": {
        "env": "SECRET_KEY",
        "required": True,
        "desc": "Flask session signing key",
        "default": "raiselab-quotes-dev",
        "sensitive": True,
    },
    "admin_email": {
        "env": "ADMIN_EMAIL",
        "required": False,
        "desc": "Seed admin account email",
    },
    "admin_password": {
        "env": "ADMIN_PASSWORD",
        "required": False,
        "desc": "Seed admin account password",
        "sensitive": True,
    },
    "logo_url": {
        "env": "QUOTE_LOGO_URL",
        "required": False,
        "desc": "Quotation logo URL (assets dir used when unset)",
    },
    "font_regular": {
        "env": "QUOTE_FONT_PATH",
        "required": False,
        "desc": "TTF for quotation text - Helvetica when unset",
    },
    "font_bold": {
        "env": "QUOTE_FONT_BOLD_PATH",
        "required": False,
        "desc": "Bold TTF for quotation text - Helvetica-Bold when unset",
    },
    "image_timeout": {
        "env": "IMAGE_FETCH_TIMEOUT",
        "required": False,
        "desc": "Per-request timeout for item image fetches (seconds)",
        "default": "15",
    },
    "image_workers": {
        "env": "IMAGE_FETCH_WORKERS",
        "required": False,
        "desc": "Thread pool size for concurrent image fetches",
        "default": "8",
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_setting(name: str) -> str:
    """Get a setting by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown setting requested: %s", name)
        return ""

    val = os.environ.get(entry["env"], "")
    if not val and "default" in entry:
        val = entry["default"]
    return val


def get_float(name: str) -> float:
    """Numeric setting; falls back to the registry default on junk values."""
    raw = get_setting(name)
    try:
        return float(raw)
    except ValueError:
        default = _REGISTRY[name].get("default", "0")
        log.warning("Setting %s=%r is not numeric - using %s",
                    _REGISTRY[name]["env"], raw, default)
        return float(default)


def get_int(name: str) -> int:
    return int(get_float(name))


def mask(value: str) -> str:
    """Mask a value for safe logging. Shows first 8 chars."""
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
        val = get_setting(name)
        is_set = bool(val)
        using_default = not os.environ.get(entry["env"]) and "default" in entry
        results[name] = {
            "set": is_set,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if not entry.get("sensitive") else ("set" if is_set else "not set"),
            "required": entry.get("required", False),
            "using_default": using_default,
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED setting missing: {entry['env']} ({entry['desc']})")
        if entry.get("sensitive") and entry.get("required") and using_default:
            warnings.append(f"{entry['env']} is using its development default")

    return {
        "settings": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def startup_check():
    """Run on startup. Logs warnings for missing critical settings."""
    report = validate_all()
    log.info("Settings: %d/%d configured", report["set"], report["total"])
    for w in report["warnings"]:
        log.warning("SETTING: %s", w)
    return report
