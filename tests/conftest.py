import os

import pytest
from fastapi.testclient import TestClient

from podstyles.api.main import app
from podstyles.core.ledger import UsageLedger
from podstyles.core.naming import NamingScheme, ScopedNameGenerator
from podstyles.core.observability.metrics import reset_metrics


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    # keep a developer's PODSTYLES_* settings and ./podstyles.yaml out of the tests
    for key in list(os.environ):
        if key.startswith("PODSTYLES_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def ledger():
    return UsageLedger()


@pytest.fixture()
def flat():
    return ScopedNameGenerator()


@pytest.fixture()
def prefixed():
    return ScopedNameGenerator(scheme=NamingScheme.PREFIXED)
