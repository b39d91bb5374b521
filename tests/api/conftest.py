import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from API_LAYER.app import app
from tests.fakes import FakeClassifier, FakeLedger, FakeSwapQuotes, make_pipeline


@pytest.fixture
def api_pipeline():
    # API tests must NOT hit a real RPC node or model
    pipeline = make_pipeline(FakeClassifier(), FakeLedger(), FakeSwapQuotes())
    with patch("API_LAYER.app.pipeline", pipeline):
        yield pipeline


@pytest.fixture
def client(api_pipeline):
    return TestClient(app)
