"""Custodial transaction writer - mints, deposits and releases tokens."""

from __future__ import annotations

import asyncio
import logging
import time

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from tcrbot.chain.abi import encode_call
from tcrbot.errors import TransactionError
from tcrbot.models.records import ConfirmationResult, ConfirmationStatus, TxHandle

log = logging.getLogger(__name__)


class Web3ChainWriter:
    """Signs and submits transactions with the custodial minter key.

    The minter key owns the token's mint role and is the sole owner of every
    custodial multisig, so deposits and releases are routed through the
    wallet's ``submitTransaction``. All submissions share one nonce sequence
    and are serialized by a lock.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        token_address: str,
        plcr_address: str,
        registry_address: str,
        chain_id: int | None = None,
        confirmations: int = 1,
        confirmation_timeout: float = 300.0,
        poll_interval: float = 2.0,
        max_attempts: int = 150,
        gas_limit: int = 500_000,
    ) -> None:
        self._w3 = w3
        self._account = account
        self._token = Web3.to_checksum_address(token_address)
        self._plcr = Web3.to_checksum_address(plcr_address)
        self._registry = Web3.to_checksum_address(registry_address)
        self._chain_id = chain_id
        self._confirmations = max(1, confirmations)
        self._timeout = confirmation_timeout
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._gas_limit = gas_limit
        self._lock = asyncio.Lock()
        self._next_nonce: int | None = None

    @property
    def address(self) -> str:
        return self._account.address

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._w3.eth.chain_id
        return self._chain_id

    async def _send(self, to: str, data: bytes, action: str) -> TxHandle:
        """Sign and broadcast one transaction under the nonce lock."""
        async with self._lock:
            try:
                pending = await self._w3.eth.get_transaction_count(
                    self._account.address, "pending",
                )
                # A node may not have seen our last broadcast yet
                nonce = pending if self._next_nonce is None else max(pending, self._next_nonce)
                tx = {
                    "to": to,
                    "data": data,
                    "value": 0,
                    "nonce": nonce,
                    "gas": self._gas_limit,
                    "gasPrice": await self._w3.eth.gas_price,
                    "chainId": await self._get_chain_id(),
                }
                signed = self._account.sign_transaction(tx)
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            except Web3Exception as exc:
                log.error("%s submission rejected by node: %s", action, exc)
                raise TransactionError(f"{action} rejected: {exc}") from exc
            except Exception as exc:
                log.error("%s submission failed: %s", action, exc)
                raise TransactionError(f"{action} failed: {exc}") from exc

            self._next_nonce = nonce + 1

        handle = TxHandle(tx_hash="0x" + bytes(tx_hash).hex(), nonce=nonce, action=action)
        log.info("Submitted %s tx %s (nonce %d)", action, handle.tx_hash[:18], nonce)
        return handle

    async def _wallet_call(self, wallet: str, target: str, data: bytes, action: str) -> TxHandle:
        """Have a custodial multisig execute a call on our behalf."""
        return await self._send(
            Web3.to_checksum_address(wallet),
            encode_call("submitTransaction(address,uint256,bytes)", [target, 0, data]),
            action,
        )

    async def submit_mint(self, wallet: str, amount: int) -> TxHandle:
        return await self._send(
            self._token,
            encode_call("mint(address,uint256)", [Web3.to_checksum_address(wallet), amount]),
            "mint",
        )

    async def submit_deposit(self, wallet: str, amount: int) -> TxHandle:
        """Approve the voting contract, then request voting rights.

        Both calls come from the same key with consecutive nonces, so the
        approval is always mined first. The returned handle is the deposit's.
        """
        await self._wallet_call(
            wallet,
            self._token,
            encode_call("approve(address,uint256)", [self._plcr, amount]),
            "approve",
        )
        return await self._wallet_call(
            wallet,
            self._plcr,
            encode_call("requestVotingRights(uint256)", [amount]),
            "deposit",
        )

    async def submit_release(self, wallet: str, listing_hash: bytes, amount: int) -> TxHandle:
        return await self._wallet_call(
            wallet,
            self._registry,
            encode_call("withdraw(bytes32,uint256)", [listing_hash, amount]),
            "release",
        )

    async def await_confirmation(self, handle: TxHandle) -> ConfirmationResult:
        """Poll for a receipt until it is deep enough, reverted, or out of time.

        Bounded both by wall-clock timeout and by attempt count.
        """
        deadline = time.monotonic() + self._timeout
        attempts = 0

        while attempts < self._max_attempts:
            attempts += 1
            try:
                receipt = await self._w3.eth.get_transaction_receipt(handle.tx_hash)
            except TransactionNotFound:
                receipt = None
            except Web3Exception as exc:
                log.warning("Receipt lookup for %s failed: %s", handle.tx_hash[:18], exc)
                receipt = None

            if receipt is not None:
                mined_in = receipt["blockNumber"]
                if receipt["status"] == 0:
                    log.error("%s tx %s reverted in block %d", handle.action, handle.tx_hash[:18], mined_in)
                    return ConfirmationResult(
                        status=ConfirmationStatus.REJECTED,
                        tx_hash=handle.tx_hash,
                        block_number=mined_in,
                        attempts=attempts,
                    )
                head = await self._w3.eth.block_number
                depth = head - mined_in + 1
                if depth >= self._confirmations:
                    log.info("%s tx %s confirmed (%d deep)", handle.action, handle.tx_hash[:18], depth)
                    return ConfirmationResult(
                        status=ConfirmationStatus.CONFIRMED,
                        tx_hash=handle.tx_hash,
                        block_number=mined_in,
                        confirmations=depth,
                        attempts=attempts,
                    )

            if time.monotonic() + self._poll_interval > deadline:
                break
            await asyncio.sleep(self._poll_interval)

        log.warning(
            "%s tx %s not confirmed after %d attempts", handle.action, handle.tx_hash[:18], attempts,
        )
        return ConfirmationResult(
            status=ConfirmationStatus.TIMED_OUT, tx_hash=handle.tx_hash, attempts=attempts,
        )
