import logging
import os
import tempfile

# ==============================================================================
#  CACHE CONFIGURATION & DEFAULTS
# ==============================================================================

"""
Defines the runtime configuration for the repository cache and the CLI.

Values come from the environment and are read on every call rather than frozen at
import time: the CLI loads `.env` from the working directory inside its group
callback, after this module has already been imported.
"""

# 1. Look for 'REPO_CONCAT_CACHE_DIR' (set by the shell or .env)
# 2. If missing, use '<system tmp>/repo-concat-cache'.
DEFAULT_CACHE_DIR = os.path.join(tempfile.gettempdir(), "repo-concat-cache")
DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_LOG_LEVEL = "WARNING"


def cache_root() -> str:
    """Absolute path of the directory shared by all cached checkouts."""
    return os.path.abspath(os.getenv("REPO_CONCAT_CACHE_DIR") or DEFAULT_CACHE_DIR)


def cache_ttl_seconds() -> int:
    raw = os.getenv("REPO_CONCAT_CACHE_TTL")
    if raw is None or not raw.strip():
        return DEFAULT_CACHE_TTL_SECONDS
    try:
        ttl = int(raw)
        if ttl <= 0:
            raise ValueError("must be positive")
        return ttl
    except ValueError as e:
        # Do not crash on a bad override, fall back to the 5 minute window
        print(f"⚠️ Warning: Invalid REPO_CONCAT_CACHE_TTL={raw!r} ({e}), using {DEFAULT_CACHE_TTL_SECONDS}s")
        return DEFAULT_CACHE_TTL_SECONDS


def log_level() -> str:
    raw = os.getenv("REPO_CONCAT_LOG_LEVEL")
    if raw is None or not raw.strip():
        return DEFAULT_LOG_LEVEL
    level = raw.strip().upper()
    # getLevelName maps registered names to their numeric level, anything else to a string
    if not isinstance(logging.getLevelName(level), int):
        print(f"⚠️ Warning: Invalid REPO_CONCAT_LOG_LEVEL={raw!r}, using {DEFAULT_LOG_LEVEL}")
        return DEFAULT_LOG_LEVEL
    return level
