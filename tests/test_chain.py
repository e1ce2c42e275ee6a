"""Chain adapters against an in-memory stand-in for the node."""

from __future__ import annotations

import asyncio

import pytest
from eth_abi import decode as abi_decode, encode as abi_encode
from eth_account import Account
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from tcrbot.chain.abi import EVENTS_BY_TOPIC, LISTING_TYPES, ZERO_ADDRESS, function_selector, listing_hash
from tcrbot.chain.poller import Web3LogPoller
from tcrbot.chain.queries import ContractQueries
from tcrbot.chain.writer import Web3ChainWriter
from tcrbot.errors import TransactionError
from tcrbot.models.records import ConfirmationStatus, TxHandle

from tests.conftest import TEST_MINTER, TEST_PRIVATE_KEY
from tests.factories import (
    PLCR_ADDRESS,
    REGISTRY_ADDRESS,
    TOKEN_ADDRESS,
    WALLET,
    make_application_log,
)

SUBMIT_TX = function_selector("submitTransaction(address,uint256,bytes)")


def _checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


async def _value(v):
    return v


class FakeEth:
    """Just enough of AsyncEth for the adapters under test."""

    def __init__(self, head: int = 100, pending_nonce: int = 0) -> None:
        self.head = head
        self.pending_nonce = pending_nonce
        self.receipts: dict[str, dict] = {}
        self.raw_sent: list[bytes] = []
        self.send_error: Exception | None = None
        self.call_results: dict[bytes, bytes] = {}
        self.logs: list[dict] = []
        self.log_filters: list[dict] = []

    @property
    def block_number(self):
        return _value(self.head)

    @property
    def gas_price(self):
        return _value(1_000_000_000)

    @property
    def chain_id(self):
        return _value(31337)

    async def get_transaction_count(self, address, block_identifier="latest"):
        return self.pending_nonce

    async def send_raw_transaction(self, raw):
        if self.send_error is not None:
            raise self.send_error
        self.raw_sent.append(bytes(raw))
        return Web3.keccak(bytes(raw))

    async def get_transaction_receipt(self, tx_hash):
        if tx_hash not in self.receipts:
            raise TransactionNotFound(f"Transaction with hash {tx_hash} not found")
        return self.receipts[tx_hash]

    async def call(self, tx):
        return self.call_results[bytes(tx["data"])[:4]]

    async def get_logs(self, filter_params):
        self.log_filters.append(filter_params)
        return [
            e for e in self.logs
            if filter_params["fromBlock"] <= e["blockNumber"] <= filter_params["toBlock"]
        ]


class FakeWeb3:
    def __init__(self, eth: FakeEth) -> None:
        self.eth = eth


class RecordingAccount:
    """Signs with the real key and keeps the unsigned transactions."""

    def __init__(self) -> None:
        self._inner = Account.from_key(TEST_PRIVATE_KEY)
        self.signed: list[dict] = []

    @property
    def address(self) -> str:
        return self._inner.address

    def sign_transaction(self, tx):
        self.signed.append(dict(tx))
        return self._inner.sign_transaction(tx)


@pytest.fixture
def eth():
    return FakeEth()


@pytest.fixture
def account():
    return RecordingAccount()


def _writer(eth, account, **kwargs) -> Web3ChainWriter:
    params = dict(
        chain_id=31337, confirmation_timeout=1.0, poll_interval=0.01, max_attempts=5,
    )
    params.update(kwargs)
    return Web3ChainWriter(
        FakeWeb3(eth), account, TOKEN_ADDRESS, PLCR_ADDRESS, REGISTRY_ADDRESS, **params,
    )


# ── Writer: submission ───────────────────────────────────


async def test_minter_address_from_key(eth, account):
    assert _writer(eth, account).address == TEST_MINTER


async def test_mint_calls_token_contract(eth, account):
    writer = _writer(eth, account)

    handle = await writer.submit_mint(WALLET, 1550)

    assert handle.action == "mint"
    assert handle.nonce == 0
    assert handle.tx_hash.startswith("0x") and len(handle.tx_hash) == 66
    tx = account.signed[0]
    assert tx["to"] == TOKEN_ADDRESS
    assert tx["chainId"] == 31337
    assert tx["data"][:4] == function_selector("mint(address,uint256)")
    recipient, amount = abi_decode(["address", "uint256"], tx["data"][4:])
    assert (_checksum(recipient), amount) == (WALLET, 1550)


async def test_deposit_is_approve_then_request_through_wallet(eth, account):
    writer = _writer(eth, account)

    handle = await writer.submit_deposit(WALLET, 50)

    assert handle.action == "deposit"
    approve, request = account.signed
    assert approve["to"] == WALLET and request["to"] == WALLET
    assert approve["data"][:4] == SUBMIT_TX
    assert request["nonce"] == approve["nonce"] + 1 == handle.nonce

    target, value, inner = abi_decode(["address", "uint256", "bytes"], approve["data"][4:])
    assert (_checksum(target), value) == (TOKEN_ADDRESS, 0)
    assert inner[:4] == function_selector("approve(address,uint256)")
    spender, allowance = abi_decode(["address", "uint256"], inner[4:])
    assert (_checksum(spender), allowance) == (PLCR_ADDRESS, 50)

    target, _, inner = abi_decode(["address", "uint256", "bytes"], request["data"][4:])
    assert _checksum(target) == PLCR_ADDRESS
    assert inner == function_selector("requestVotingRights(uint256)") + abi_encode(["uint256"], [50])


async def test_release_withdraws_from_registry_through_wallet(eth, account):
    writer = _writer(eth, account)
    lh = listing_hash("nominee")

    await writer.submit_release(WALLET, lh, 200)

    (tx,) = account.signed
    assert tx["to"] == WALLET
    target, _, inner = abi_decode(["address", "uint256", "bytes"], tx["data"][4:])
    assert _checksum(target) == REGISTRY_ADDRESS
    assert inner[:4] == function_selector("withdraw(bytes32,uint256)")
    assert abi_decode(["bytes32", "uint256"], inner[4:]) == (lh, 200)


async def test_concurrent_submissions_get_distinct_nonces(eth, account):
    # Node keeps reporting the same pending count, as if it lags behind
    eth.pending_nonce = 5
    writer = _writer(eth, account)

    handles = await asyncio.gather(*(writer.submit_mint(WALLET, n) for n in (1, 2, 3)))

    assert sorted(h.nonce for h in handles) == [5, 6, 7]
    assert [tx["nonce"] for tx in account.signed] == [5, 6, 7]


async def test_node_rejection_raises_and_keeps_nonce(eth, account):
    writer = _writer(eth, account)
    eth.send_error = Web3Exception("nonce too low")

    with pytest.raises(TransactionError, match="mint rejected"):
        await writer.submit_mint(WALLET, 1)

    eth.send_error = None
    handle = await writer.submit_mint(WALLET, 1)
    assert handle.nonce == 0


async def test_transport_failure_raises_transaction_error(eth, account):
    writer = _writer(eth, account)
    eth.send_error = ConnectionError("connection refused")

    with pytest.raises(TransactionError, match="mint failed"):
        await writer.submit_mint(WALLET, 1)


# ── Writer: confirmation ─────────────────────────────────


async def test_confirmed_receipt(eth, account):
    writer = _writer(eth, account)
    handle = TxHandle(tx_hash="0x" + "01" * 32, nonce=0, action="mint")
    eth.receipts[handle.tx_hash] = {"status": 1, "blockNumber": 98}

    result = await writer.await_confirmation(handle)

    assert result.status is ConfirmationStatus.CONFIRMED
    assert result.confirmed
    assert result.block_number == 98
    assert result.confirmations == 3
    assert result.attempts == 1


async def test_reverted_receipt_is_rejected(eth, account):
    writer = _writer(eth, account)
    handle = TxHandle(tx_hash="0x" + "02" * 32, nonce=0, action="deposit")
    eth.receipts[handle.tx_hash] = {"status": 0, "blockNumber": 99}

    result = await writer.await_confirmation(handle)

    assert result.status is ConfirmationStatus.REJECTED
    assert not result.confirmed


async def test_missing_receipt_times_out_after_max_attempts(eth, account):
    writer = _writer(eth, account, max_attempts=3)
    handle = TxHandle(tx_hash="0x" + "03" * 32, nonce=0, action="release")

    result = await writer.await_confirmation(handle)

    assert result.status is ConfirmationStatus.TIMED_OUT
    assert result.attempts == 3
    assert result.block_number is None


async def test_shallow_receipt_not_confirmed(eth, account):
    writer = _writer(eth, account, confirmations=6, max_attempts=2)
    handle = TxHandle(tx_hash="0x" + "04" * 32, nonce=0, action="mint")
    eth.receipts[handle.tx_hash] = {"status": 1, "blockNumber": 100}

    result = await writer.await_confirmation(handle)

    assert result.status is ConfirmationStatus.TIMED_OUT


async def test_receipt_found_on_later_attempt(eth, account):
    writer = _writer(eth, account, max_attempts=50)
    handle = TxHandle(tx_hash="0x" + "05" * 32, nonce=0, action="mint")

    async def mine_later():
        await asyncio.sleep(0.015)
        eth.receipts[handle.tx_hash] = {"status": 1, "blockNumber": 100}

    miner = asyncio.create_task(mine_later())
    result = await writer.await_confirmation(handle)
    await miner

    assert result.confirmed
    assert result.attempts > 1


# ── Queries ──────────────────────────────────────────────


def _listing_result(owner: str, unstaked: int = 700, data: str = "nominee") -> bytes:
    return abi_encode(LISTING_TYPES, [1_700_000_000, True, owner, unstaked, 0, data])


async def test_listing_query(eth):
    queries = ContractQueries(FakeWeb3(eth), TOKEN_ADDRESS, REGISTRY_ADDRESS)
    eth.call_results[function_selector("listings(bytes32)")] = _listing_result(WALLET)

    listing = await queries.get_listing(listing_hash("nominee"))

    assert listing.owner == WALLET
    assert listing.whitelisted is True
    assert listing.unstaked_deposit == 700
    assert listing.data == "nominee"
    assert await queries.get_listing_data(listing_hash("nominee")) == "nominee"


async def test_zeroed_listing_is_absent(eth):
    queries = ContractQueries(FakeWeb3(eth), TOKEN_ADDRESS, REGISTRY_ADDRESS)
    eth.call_results[function_selector("listings(bytes32)")] = abi_encode(
        LISTING_TYPES, [0, False, ZERO_ADDRESS, 0, 0, ""],
    )

    assert await queries.get_listing(listing_hash("gone")) is None
    assert await queries.get_listing_data(listing_hash("gone")) == ""


async def test_balance_query(eth):
    queries = ContractQueries(FakeWeb3(eth), TOKEN_ADDRESS, REGISTRY_ADDRESS)
    eth.call_results[function_selector("balanceOf(address)")] = abi_encode(
        ["uint256"], [1500 * 10**18],
    )

    assert await queries.get_token_balance(WALLET) == 1500 * 10**18


# ── Poller ───────────────────────────────────────────────


def _log_entry(raw, removed: bool = False) -> dict:
    return {
        "address": raw.address,
        "topics": list(raw.topics),
        "data": raw.data,
        "blockNumber": raw.block_number,
        "transactionHash": bytes.fromhex(raw.transaction_hash[2:]),
        "logIndex": raw.log_index,
        "removed": removed,
    }


async def test_poll_orders_logs_and_advances_cursor(eth):
    late = make_application_log(data="b", block_number=95, log_index=1)
    early = make_application_log(data="a", block_number=95, log_index=0)
    eth.logs = [_log_entry(late), _log_entry(early)]
    poller = Web3LogPoller(FakeWeb3(eth), [REGISTRY_ADDRESS], start_block=90)

    events = await poller.poll()

    assert [e.log_index for e in events] == [0, 1]
    assert events[0].event_id == early.event_id
    assert events[0].topics[0] in EVENTS_BY_TOPIC
    assert await poller.get_cursor() is None
    poller.commit()
    assert await poller.get_cursor() == 100
    assert eth.log_filters[0]["address"] == [REGISTRY_ADDRESS]


async def test_poll_respects_confirmations_and_window(eth):
    poller = Web3LogPoller(
        FakeWeb3(eth), [REGISTRY_ADDRESS], start_block=50, confirmations=3, block_window=10,
    )

    await poller.poll()
    poller.commit()
    await poller.poll()

    assert [(f["fromBlock"], f["toBlock"]) for f in eth.log_filters] == [(50, 59), (60, 69)]


async def test_poll_skips_removed_logs(eth):
    eth.logs = [_log_entry(make_application_log(block_number=99), removed=True)]
    poller = Web3LogPoller(FakeWeb3(eth), [REGISTRY_ADDRESS], start_block=99)

    assert await poller.poll() == []
    poller.commit()
    assert await poller.get_cursor() == 100


async def test_poll_idle_when_caught_up(eth):
    poller = Web3LogPoller(FakeWeb3(eth), [REGISTRY_ADDRESS])
    poller.set_cursor(100)

    assert await poller.poll() == []
    assert eth.log_filters == []


async def test_uncommitted_window_is_polled_again(eth):
    eth.logs = [_log_entry(make_application_log(block_number=95))]
    poller = Web3LogPoller(FakeWeb3(eth), [REGISTRY_ADDRESS], start_block=90)

    first = await poller.poll()
    second = await poller.poll()

    assert [e.event_id for e in second] == [e.event_id for e in first]
    assert [(f["fromBlock"], f["toBlock"]) for f in eth.log_filters] == [(90, 100), (90, 100)]
    assert await poller.get_cursor() is None


async def test_restored_cursor_discards_pending_window(eth):
    poller = Web3LogPoller(FakeWeb3(eth), [REGISTRY_ADDRESS], start_block=90)
    await poller.poll()

    poller.set_cursor(95)
    poller.commit()

    assert await poller.get_cursor() == 95
