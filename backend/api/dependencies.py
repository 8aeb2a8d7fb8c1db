"""
Shared dependencies for the Timeboard API.
Kept apart from main.py so routers can import them without a cycle.
"""
import os
import logging
import logging.handlers

from tblib.database import TimeboardDatabase
from tblib.snapshot import SnapshotCache
from slowapi import Limiter
from slowapi.util import get_remote_address

# ── Structured JSON Logging setup ───────────────────────────────
import json as _json
from datetime import datetime as _dt, timezone as _tz

class _JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _dt.fromtimestamp(record.created, tz=_tz.utc).strftime('%Y-%m-%dT%H:%M:%S.') + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return _json.dumps(entry, ensure_ascii=False)

_log_file = os.environ.get('TB_LOG_FILE', '/tmp/timeboard-api.log')
_handler = logging.handlers.RotatingFileHandler(
    _log_file, maxBytes=10 * 1024 * 1024, backupCount=3
)
_handler.setFormatter(_JsonFormatter())

_logger = logging.getLogger('timeboard')
# Log level configurable via ENV
_log_level_str = os.environ.get('TB_LOG_LEVEL', 'INFO').upper()
_log_level = getattr(logging, _log_level_str, logging.INFO)
_logger.setLevel(_log_level)
_logger.addHandler(_handler)
_stderr_handler = logging.StreamHandler()
_stderr_handler.setFormatter(_JsonFormatter())
_logger.addHandler(_stderr_handler)

TB_LOG_FILE = _log_file

# ── Rate Limiter ─────────────────────────────────────────────────
DASHBOARD_RATE_LIMIT = os.environ.get('TB_DASHBOARD_RATE_LIMIT', '60/minute')
limiter = Limiter(key_func=get_remote_address)

# ── Snapshot cache ───────────────────────────────────────────────
# One per process; write endpoints invalidate it, report endpoints read it.
_snapshot_cache = SnapshotCache()


def get_db() -> TimeboardDatabase:
    """Get a database handle using the current DB_PATH from main module."""
    import api.main as _main
    return TimeboardDatabase(_main.DB_PATH)


def get_snapshot_cache() -> SnapshotCache:
    return _snapshot_cache
