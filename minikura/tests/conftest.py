"""
Test configuration for the Minikura operator.

Patches are applied at MODULE LEVEL, before any minikura module is imported,
so that module-level code (settings, engine creation, setup_logging()) uses
the test doubles.

Import order matters:
  1. Env vars
  2. Kubernetes config mock (ClusterClient must never reach a real cluster)
  3. SQLite engine replaces the MySQL engine in minikura.database
  4. minikura.main imported (uses all the patched objects above)
  5. pytest fixtures defined
"""
import os
import tempfile
from typing import Generator

# ============================================================
# 1. Environment variables, read by config.py at import time
# ============================================================
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG_MODE", "false")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="minikura-logs-"))
os.environ.setdefault("LOG_ENABLE_CONSOLE", "false")
os.environ.setdefault("KUBERNETES_NAMESPACE", "minikura-test")
os.environ.setdefault("ENABLE_CRD_REFLECTION", "false")
os.environ.setdefault("CRD_SETTLE_SECONDS", "0")

# ============================================================
# 2. Mock Kubernetes config loaders
# ============================================================
import kubernetes.config as _k8s_cfg  # noqa: E402

_k8s_cfg.load_kube_config = lambda **kw: None
_k8s_cfg.load_incluster_config = lambda **kw: None

# ============================================================
# 3. SQLite in-memory engine shared across threads
# ============================================================
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
_TestSession = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

import minikura.database as _db_mod  # noqa: E402

_db_mod.engine = _test_engine
_db_mod.SessionLocal = _TestSession

# ============================================================
# 4. Import minikura, all patches are in place
# ============================================================
from minikura import models  # noqa: E402,F401
from minikura.database import Base, get_db  # noqa: E402
from minikura.main import app  # noqa: E402

Base.metadata.create_all(bind=_test_engine)

# ============================================================
# 5. pytest fixtures
# ============================================================
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

from minikura.tests.helpers import live_object  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate():
    """Truncate every table before each test."""
    with _test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db():
    session = _TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mock_cluster() -> MagicMock:
    """ClusterClient double: every API verb is a MagicMock."""
    cluster = MagicMock()
    cluster.core_v1 = MagicMock()
    cluster.apps_v1 = MagicMock()
    cluster.custom_objects = MagicMock()
    cluster.api_extensions = MagicMock()
    for api in (cluster.core_v1, cluster.apps_v1):
        for suffix in ("config_map", "service", "deployment", "stateful_set"):
            getattr(api, f"read_namespaced_{suffix}").return_value = live_object()
    cluster.custom_objects.list_namespaced_custom_object.return_value = {"items": []}
    return cluster


def _db_override(session):
    def _override() -> Generator:
        yield session
    return _override


@pytest.fixture()
async def client(db) -> AsyncClient:
    """HTTP client backed by the test DB (startup events are not run)."""
    app.dependency_overrides[get_db] = _db_override(db)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c
    app.dependency_overrides.clear()
