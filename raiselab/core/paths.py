"""
raiselab/core/paths.py - Centralized Path Configuration

Single source of truth for all directory paths across the application.
Every module imports from here instead of computing its own DATA_DIR.

RAISELAB_DATA_DIR points DATA_DIR at a persistent volume in production;
the git-tracked data/ folder is used for local development.
"""

import os
import logging

log = logging.getLogger("raiselab.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))

_GIT_DATA_DIR = os.path.join(PROJECT_ROOT, "data")


def _resolve_data_dir() -> str:
    """Find the best persistent data directory."""
    env_dir = os.environ.get("RAISELAB_DATA_DIR", "")
    if env_dir:
        os.makedirs(env_dir, exist_ok=True)
        return env_dir
    return _GIT_DATA_DIR

DATA_DIR = _resolve_data_dir()
_USING_VOLUME = (DATA_DIR != _GIT_DATA_DIR)

if _USING_VOLUME:
    log.info("DATA_DIR: %s (persistent volume)", DATA_DIR)
else:
    log.debug("DATA_DIR: %s (git-tracked)", DATA_DIR)

# ── Core Directories ─────────────────────────────────────────────────────────
ASSETS_DIR = os.path.join(DATA_DIR, "assets")
UPLOAD_DIR = os.path.join(DATA_DIR, "uploads")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
LOG_DIR = os.path.join(DATA_DIR, "logs")

# ── Key File Paths ───────────────────────────────────────────────────────────
DB_PATH = os.path.join(DATA_DIR, "raiselab.db")

for _d in [DATA_DIR, ASSETS_DIR, UPLOAD_DIR, OUTPUT_DIR]:
    os.makedirs(_d, exist_ok=True)


def validate_paths() -> dict:
    """Runtime validation - call at app startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {}}

    checks = {
        "DATA_DIR": (DATA_DIR, True),
        "ASSETS_DIR": (ASSETS_DIR, True),
        "UPLOAD_DIR": (UPLOAD_DIR, True),
        "OUTPUT_DIR": (OUTPUT_DIR, True),
    }

    for name, (path, required) in checks.items():
        result["resolved"][name] = path
        if not os.path.exists(path):
            if required:
                result["errors"].append(f"{name} not found: {path}")
                result["ok"] = False
            else:
                result["warnings"].append(f"{name} not found: {path}")

    test_file = os.path.join(DATA_DIR, ".write_test")
    try:
        with open(test_file, "w") as f:
            f.write("ok")
        os.remove(test_file)
    except OSError as e:
        result["errors"].append(f"DATA_DIR not writable: {e}")
        result["ok"] = False

    result["resolved"]["USING_VOLUME"] = str(_USING_VOLUME)
    return result
