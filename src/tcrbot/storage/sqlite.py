"""SQLite implementation of the StateStore protocol."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import aiosqlite

from tcrbot.errors import DataConsistencyError, WalletAlreadyLinkedError
from tcrbot.models.records import Account, ActivityRecord

SCHEMA = """
-- Block cursor for resumption
CREATE TABLE IF NOT EXISTS cursor (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Linked social accounts (created by onboarding)
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    twitter_id TEXT NOT NULL UNIQUE,
    twitter_handle TEXT NOT NULL,
    multisig_address TEXT,
    multisig_factory_identifier INTEGER,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_accounts_multisig
    ON accounts(lower(multisig_address));
CREATE UNIQUE INDEX IF NOT EXISTS idx_accounts_factory_id
    ON accounts(multisig_factory_identifier);

-- Events whose reactor completed
CREATE TABLE IF NOT EXISTS processed_events (
    event_id TEXT PRIMARY KEY,
    event_type TEXT NOT NULL,
    processed_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Confirmed custodial side effects per event (mint, deposit, release)
CREATE TABLE IF NOT EXISTS event_steps (
    event_id TEXT NOT NULL,
    step TEXT NOT NULL,
    tx_hash TEXT NOT NULL,
    completed_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (event_id, step)
);

-- Listing display data seen in application/challenge events
CREATE TABLE IF NOT EXISTS listing_data (
    listing_hash TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Activity log
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    event_id TEXT,
    account_id INTEGER,
    amount TEXT,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# SQLite INTEGER range; factory identifiers are uint256 on chain
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _fits_integer(value: int) -> bool:
    return _INT64_MIN <= value <= _INT64_MAX


class SQLiteStateStore:
    """SQLite-backed implementation of the StateStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Cursor ─────────────────────────────────────────────

    async def get_cursor(self) -> int | None:
        async with self.db.execute("SELECT last_block FROM cursor WHERE id=1") as cur:
            row = await cur.fetchone()
            return row["last_block"] if row else None

    async def set_cursor(self, block: int) -> None:
        await self.db.execute(
            "INSERT INTO cursor (id, last_block, updated_at) VALUES (1, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET last_block=excluded.last_block,"
            " updated_at=excluded.updated_at",
            (block, _now()),
        )
        await self.db.commit()

    # ── Accounts ───────────────────────────────────────────

    async def create_account(
        self,
        twitter_id: str,
        twitter_handle: str,
        multisig_factory_identifier: int | None = None,
    ) -> Account:
        if multisig_factory_identifier is not None and not _fits_integer(multisig_factory_identifier):
            raise DataConsistencyError(
                f"factory identifier {multisig_factory_identifier} does not fit a 64-bit integer"
            )
        try:
            cur = await self.db.execute(
                "INSERT INTO accounts (twitter_id, twitter_handle,"
                " multisig_factory_identifier, created_at) VALUES (?, ?, ?, ?)",
                (twitter_id, twitter_handle, multisig_factory_identifier, _now()),
            )
        except sqlite3.IntegrityError as exc:
            raise DataConsistencyError(
                f"account {twitter_handle} conflicts with an existing account: {exc}"
            ) from exc
        await self.db.commit()
        account = await self.get_account(cur.lastrowid)
        assert account is not None
        return account

    async def get_account(self, account_id: int) -> Account | None:
        async with self.db.execute(
            "SELECT * FROM accounts WHERE id=?", (account_id,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_account(row) if row else None

    async def find_account_by_wallet(self, address: str) -> Account | None:
        async with self.db.execute(
            "SELECT * FROM accounts WHERE lower(multisig_address)=lower(?)", (address,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_account(row) if row else None

    async def find_account_by_factory_identifier(self, identifier: int) -> Account | None:
        if not _fits_integer(identifier):
            # No stored account can hold it
            return None
        async with self.db.execute(
            "SELECT * FROM accounts WHERE multisig_factory_identifier=?", (identifier,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_account(row) if row else None

    async def set_multisig_address(self, account_id: int, address: str) -> bool:
        """Attach a wallet to an account that has none.

        Returns False when the same address is already attached. Raises
        WalletAlreadyLinkedError when a different one is.
        """
        try:
            cur = await self.db.execute(
                "UPDATE accounts SET multisig_address=? WHERE id=? AND multisig_address IS NULL",
                (address, account_id),
            )
        except sqlite3.IntegrityError as exc:
            raise DataConsistencyError(
                f"wallet {address} is already linked to another account"
            ) from exc
        await self.db.commit()
        if cur.rowcount == 1:
            return True

        account = await self.get_account(account_id)
        if account is None:
            raise DataConsistencyError(f"account {account_id} does not exist")
        if (account.multisig_address or "").lower() == address.lower():
            return False
        raise WalletAlreadyLinkedError(
            f"account {account_id} already linked to {account.multisig_address}, refusing {address}"
        )

    async def get_all_accounts(self) -> list[Account]:
        async with self.db.execute("SELECT * FROM accounts ORDER BY id") as cur:
            return [_row_to_account(row) async for row in cur]

    # ── Event ledger ───────────────────────────────────────

    async def is_event_processed(self, event_id: str) -> bool:
        async with self.db.execute(
            "SELECT 1 FROM processed_events WHERE event_id=?", (event_id,)
        ) as cur:
            return await cur.fetchone() is not None

    async def mark_event_processed(self, event_id: str, event_type: str) -> None:
        await self.db.execute(
            "INSERT OR IGNORE INTO processed_events (event_id, event_type, processed_at)"
            " VALUES (?, ?, ?)",
            (event_id, event_type, _now()),
        )
        await self.db.commit()

    async def get_completed_step(self, event_id: str, step: str) -> str | None:
        async with self.db.execute(
            "SELECT tx_hash FROM event_steps WHERE event_id=? AND step=?", (event_id, step)
        ) as cur:
            row = await cur.fetchone()
            return row["tx_hash"] if row else None

    async def mark_step_completed(self, event_id: str, step: str, tx_hash: str) -> None:
        await self.db.execute(
            "INSERT OR REPLACE INTO event_steps (event_id, step, tx_hash, completed_at)"
            " VALUES (?, ?, ?, ?)",
            (event_id, step, tx_hash, _now()),
        )
        await self.db.commit()

    # ── Listing data ───────────────────────────────────────

    async def save_listing_data(self, listing_hash: bytes, data: str) -> None:
        await self.db.execute(
            "INSERT OR REPLACE INTO listing_data (listing_hash, data, updated_at)"
            " VALUES (?, ?, ?)",
            (listing_hash.hex(), data, _now()),
        )
        await self.db.commit()

    async def get_listing_data(self, listing_hash: bytes) -> str | None:
        async with self.db.execute(
            "SELECT data FROM listing_data WHERE listing_hash=?", (listing_hash.hex(),)
        ) as cur:
            row = await cur.fetchone()
            return row["data"] if row else None

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        event_id: str | None = None,
        account_id: int | None = None,
        amount: int | None = None,
    ) -> None:
        # Atomic amounts overflow SQLite's 64-bit INTEGER
        await self.db.execute(
            "INSERT INTO activity_log (event_type, event_id, account_id, amount, message, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (event_type, event_id, account_id,
             str(amount) if amount is not None else None, message, _now()),
        )
        await self.db.commit()

    async def get_recent_activity(
        self,
        limit: int = 50,
        event_types: Sequence[str] | None = None,
    ) -> list[ActivityRecord]:
        query = "SELECT * FROM activity_log"
        params: list = []
        if event_types:
            query += f" WHERE event_type IN ({', '.join('?' * len(event_types))})"
            params.extend(event_types)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        async with self.db.execute(query, params) as cur:
            return [
                ActivityRecord(
                    id=row["id"],
                    event_type=row["event_type"],
                    event_id=row["event_id"],
                    account_id=row["account_id"],
                    amount=int(row["amount"]) if row["amount"] is not None else None,
                    message=row["message"],
                    created_at=row["created_at"],
                )
                async for row in cur
            ]


# ── Row converters ─────────────────────────────────────────


def _row_to_account(row: aiosqlite.Row) -> Account:
    return Account(
        id=row["id"],
        twitter_id=row["twitter_id"],
        twitter_handle=row["twitter_handle"],
        multisig_address=row["multisig_address"],
        multisig_factory_identifier=row["multisig_factory_identifier"],
        created_at=row["created_at"],
    )
