"""Shared fixtures for tcrbot tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from tcrbot.daemon import BotDaemon
from tcrbot.models.config import BotConfig, TokenConfig
from tcrbot.reactors.notifier import NotificationEmitter
from tcrbot.reactors.provisioner import WalletProvisioner
from tcrbot.reactors.resolver import AccountResolver, ListingResolver
from tcrbot.reactors.settlement import RewardSettlement
from tcrbot.storage.sqlite import SQLiteStateStore

from tests.factories import (
    FACTORY_ADDRESS,
    PLCR_ADDRESS,
    REGISTRY_ADDRESS,
    TOKEN_ADDRESS,
)
from tests.mocks import MockChainWriter, MockMessenger, MockPoller, MockQueries

# Well-known development key (first Hardhat/Anvil account), never funded on a real chain
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_MINTER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

# Whole-token amounts so human and atomic units coincide in assertions
TEST_TOKENS = TokenConfig(
    decimals=0,
    symbol="TCRP",
    initial_mint=1550,
    initial_vote_deposit=50,
    min_deposit=500,
)


def pytest_configure(config):
    """Add contract info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Registry"] = REGISTRY_ADDRESS
    meta["Wallet Factory"] = FACTORY_ADDRESS
    meta["Minter"] = TEST_MINTER


def make_test_config(**overrides) -> BotConfig:
    """Build a BotConfig suitable for testing."""
    defaults = dict(
        poll_interval=1,
        error_backoff=1,
        rpc_url="http://127.0.0.1:8545",
        chain_id=31337,
        private_key=TEST_PRIVATE_KEY,
        token_address=TOKEN_ADDRESS,
        registry_address=REGISTRY_ADDRESS,
        plcr_address=PLCR_ADDRESS,
        wallet_factory_address=FACTORY_ADDRESS,
        confirmation_timeout=1.0,
        confirmation_poll_interval=0.01,
        confirmation_max_attempts=5,
        twitter_token="test-token",
        db_path=":memory:",
        tokens=TEST_TOKENS,
    )
    defaults.update(overrides)
    return BotConfig(**defaults)


@pytest.fixture
def test_config():
    """Default BotConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteStateStore."""
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def mock_poller():
    return MockPoller()


@pytest.fixture
def mock_writer():
    return MockChainWriter()


@pytest.fixture
def mock_queries():
    return MockQueries()


@pytest.fixture
def mock_messenger():
    return MockMessenger()


@pytest.fixture
def accounts(store):
    return AccountResolver(store)


@pytest.fixture
def notifier(store, mock_queries, mock_messenger, accounts):
    return NotificationEmitter(
        mock_messenger, mock_queries, accounts, ListingResolver(store, mock_queries),
        decimals=TEST_TOKENS.decimals, symbol=TEST_TOKENS.symbol,
    )


@pytest.fixture
def provisioner(store, accounts, mock_queries, mock_writer, mock_messenger):
    return WalletProvisioner(
        store, accounts, mock_queries, mock_writer, mock_messenger,
        initial_mint=TEST_TOKENS.initial_mint,
        vote_deposit=TEST_TOKENS.initial_vote_deposit,
        decimals=TEST_TOKENS.decimals,
    )


@pytest.fixture
def settlement(store, accounts, mock_queries, mock_writer, notifier):
    return RewardSettlement(
        store, accounts, mock_queries, mock_writer, notifier,
        min_deposit=TEST_TOKENS.min_deposit,
        decimals=TEST_TOKENS.decimals,
    )


@pytest.fixture
async def daemon(test_config, store, mock_poller, mock_writer, mock_queries, mock_messenger):
    """Fully wired BotDaemon with mocked components."""
    d = BotDaemon(test_config)
    d.store = store
    d.poller = mock_poller
    d.writer = mock_writer
    d.queries = mock_queries
    d.messenger = mock_messenger
    d.build_pipeline()
    return d
