"""
Shared test fixtures for the Timeboard backend tests.
"""
import os
import sys
import shutil
import pytest

# ── Python path setup ──────────────────────────────────────────────────────────
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

os.environ.setdefault("TB_LOG_LEVEL", "WARNING")

# ── Seed database ──────────────────────────────────────────────────────────────
_FIXTURES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")
SEED_DOCUMENT = os.path.join(_FIXTURES_DIR, "timeboard.json")


@pytest.fixture
def db_path(tmp_path):
    """Function-scoped: fresh copy of the seed database per test."""
    dst = tmp_path / "data"
    dst.mkdir()
    shutil.copy(SEED_DOCUMENT, str(dst / "timeboard.json"))
    return str(dst)


@pytest.fixture
def db(db_path):
    from tblib.database import TimeboardDatabase
    return TimeboardDatabase(db_path)


@pytest.fixture
def app(db_path):
    """The FastAPI app pointed at this test's database copy."""
    import api.main as main_module
    from api.dependencies import get_snapshot_cache, limiter
    original = main_module.DB_PATH
    main_module.DB_PATH = db_path
    get_snapshot_cache().invalidate()
    limiter.reset()
    yield main_module.app
    main_module.DB_PATH = original


@pytest.fixture
def client(app):
    """Function-scoped sync TestClient on a fresh database."""
    from starlette.testclient import TestClient
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def lenient_client(app):
    """TestClient that turns unhandled server errors into 500 responses."""
    from starlette.testclient import TestClient
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
