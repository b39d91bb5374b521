# tests/conftest.py
import sys
from pathlib import Path

# ---------------------------------------------------------
# Ensure project root is on PYTHONPATH BEFORE app imports
# ---------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# ---------------------------------------------------------
# Now safe to import project modules
# ---------------------------------------------------------
import pytest
from solders.keypair import Keypair

from services.signing_context import AgentSigningContext
from tests.fakes import FakeClassifier, FakeLedger, FakeSwapQuotes, make_pipeline


@pytest.fixture
def wallet() -> str:
    return str(Keypair().pubkey())


@pytest.fixture
def recipient() -> str:
    return str(Keypair().pubkey())


@pytest.fixture
def agent_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def signing_context(agent_keypair) -> AgentSigningContext:
    return AgentSigningContext.from_base58(str(agent_keypair))


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def swap_quotes() -> FakeSwapQuotes:
    return FakeSwapQuotes()


@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def pipeline(classifier, ledger, swap_quotes, signing_context):
    return make_pipeline(classifier, ledger, swap_quotes, signing_context)
