"""CLI entry point for the tcrbot daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from web3 import AsyncHTTPProvider, AsyncWeb3

from tcrbot.chain.abi import format_human, listing_hash
from tcrbot.chain.queries import ContractQueries
from tcrbot.config import load_config
from tcrbot.daemon import run_daemon
from tcrbot.errors import DataConsistencyError
from tcrbot.storage.sqlite import SQLiteStateStore

FAILURE_TYPES = ("decode_failed", "event_failed")


def _require_key(cfg):
    """Exit with error if no custodial key is configured."""
    if not cfg.private_key:
        click.echo("Error: No custodial private key configured.", err=True)
        click.echo("Set TCRBOT_PRIVATE_KEY env var or private_key in config.", err=True)
        sys.exit(1)


def _require_contracts(cfg):
    """Exit with error if any contract address is missing."""
    missing = [
        name for name, value in (
            ("token_address", cfg.token_address),
            ("registry_address", cfg.registry_address),
            ("plcr_address", cfg.plcr_address),
            ("wallet_factory_address", cfg.wallet_factory_address),
        ) if not value
    ]
    if missing:
        click.echo(f"Error: Missing contract addresses: {', '.join(missing)}", err=True)
        click.echo("Set them in the [ethereum] config section or deployments.json.", err=True)
        sys.exit(1)


def _queries(cfg) -> ContractQueries:
    w3 = AsyncWeb3(AsyncHTTPProvider(cfg.rpc_url))
    return ContractQueries(w3, cfg.token_address, cfg.registry_address)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """tcrbot - Token-Curated Registry event bot."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the event daemon."""
    cfg = load_config(ctx.obj["config_path"])
    _require_key(cfg)
    _require_contracts(cfg)
    if not cfg.twitter_token:
        click.echo("Error: No Twitter token configured (TCRBOT_TWITTER_TOKEN).", err=True)
        sys.exit(1)

    click.echo(f"Starting tcrbot daemon (preregistration: {cfg.preregistration})")
    asyncio.run(run_daemon(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show daemon configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"RPC URL:         {cfg.rpc_url}")
    click.echo(f"Token:           {cfg.token_address or '(not set)'}")
    click.echo(f"Registry:        {cfg.registry_address or '(not set)'}")
    click.echo(f"PLCR voting:     {cfg.plcr_address or '(not set)'}")
    click.echo(f"Wallet factory:  {cfg.wallet_factory_address or '(not set)'}")
    click.echo(f"Confirmations:   {cfg.confirmations} (timeout {cfg.confirmation_timeout:g}s)")
    click.echo(f"Initial mint:    {cfg.tokens.initial_mint} {cfg.tokens.symbol}")
    click.echo(f"Vote deposit:    {cfg.tokens.initial_vote_deposit} {cfg.tokens.symbol}")
    click.echo(f"Min deposit:     {cfg.tokens.min_deposit} {cfg.tokens.symbol}")
    click.echo(f"Preregistration: {cfg.preregistration}")
    click.echo(f"DB path:         {cfg.db_path}")
    click.echo(f"Private key:     {'***configured***' if cfg.private_key else '(not set)'}")
    click.echo(f"Twitter token:   {'***configured***' if cfg.twitter_token else '(not set)'}")


@cli.command()
@click.argument("address")
@click.pass_context
def balance(ctx: click.Context, address: str) -> None:
    """Show the token balance of ADDRESS."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contracts(cfg)

    async def _balance():
        atomic = await _queries(cfg).get_token_balance(address)
        click.echo(f"{address}: {format_human(atomic, cfg.tokens.decimals)} {cfg.tokens.symbol}")

    asyncio.run(_balance())


@cli.command()
@click.argument("data")
@click.pass_context
def listing(ctx: click.Context, data: str) -> None:
    """Show the on-chain listing for DATA (a nominated handle)."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contracts(cfg)

    async def _listing():
        result = await _queries(cfg).get_listing(listing_hash(data))
        if result is None:
            click.echo(f"No listing for {data}")
            return
        decimals = cfg.tokens.decimals
        click.echo(f"Listing:     {result.data}")
        click.echo(f"Hash:        0x{result.listing_hash.hex()}")
        click.echo(f"Owner:       {result.owner}")
        click.echo(f"Whitelisted: {result.whitelisted}")
        click.echo(f"Unstaked:    {format_human(result.unstaked_deposit, decimals)} {cfg.tokens.symbol}")
        click.echo(f"Challenge:   {result.challenge_id or '-'}")

    asyncio.run(_listing())


# ── Accounts ───────────────────────────────────────────


@cli.command("account-add")
@click.option("--twitter-id", required=True, help="Numeric Twitter user ID")
@click.option("--handle", required=True, help="Twitter handle without @")
@click.option("--factory-id", type=int, default=None, help="Identifier passed to the wallet factory")
@click.pass_context
def account_add(ctx: click.Context, twitter_id: str, handle: str, factory_id: int | None) -> None:
    """Link a Twitter account awaiting a custodial wallet."""
    cfg = load_config(ctx.obj["config_path"])

    async def _add():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            account = await store.create_account(twitter_id, handle.lstrip("@"), factory_id)
            click.echo(f"Created account #{account.id} for @{account.twitter_handle}")
        except DataConsistencyError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
        finally:
            await store.close()

    asyncio.run(_add())


@cli.command()
@click.pass_context
def accounts(ctx: click.Context) -> None:
    """List linked accounts."""
    cfg = load_config(ctx.obj["config_path"])

    async def _accounts():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            rows = await store.get_all_accounts()
            if not rows:
                click.echo("No accounts.")
                return

            for a in rows:
                wallet = a.multisig_address or "(pending)"
                factory = a.multisig_factory_identifier if a.multisig_factory_identifier is not None else "-"
                click.echo(f"  #{a.id} @{a.twitter_handle:20s} wallet={wallet} factory_id={factory}")
        finally:
            await store.close()

    asyncio.run(_accounts())


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of entries to show")
@click.option("--failed", is_flag=True, help="Only events that failed to decode or process")
@click.pass_context
def activity(ctx: click.Context, limit: int, failed: bool) -> None:
    """Show the recent activity log."""
    cfg = load_config(ctx.obj["config_path"])

    async def _activity():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            entries = await store.get_recent_activity(
                limit, event_types=FAILURE_TYPES if failed else None,
            )
            if not entries:
                click.echo("No activity recorded.")
                return

            for e in entries:
                click.echo(f"  {e.created_at} [{e.event_type:15s}] {e.message}")
        finally:
            await store.close()

    asyncio.run(_activity())


# ── Recovery ───────────────────────────────────────────


@cli.command()
@click.option("--from-block", type=int, required=True, help="First block to process again")
@click.pass_context
def replay(ctx: click.Context, from_block: int) -> None:
    """Rewind the saved cursor so the daemon re-reads logs from a block.

    Run while the daemon is stopped. Completed events are skipped on the
    second pass; failed ones resume after their last confirmed step.
    """
    if from_block < 0:
        raise click.BadParameter("must be zero or greater", param_hint="--from-block")
    cfg = load_config(ctx.obj["config_path"])

    async def _replay():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            previous = await store.get_cursor()
            await store.set_cursor(from_block - 1)
            await store.log_activity(
                "replay_requested",
                f"Cursor rewound from {previous if previous is not None else '(none)'} "
                f"to replay from block {from_block}",
            )
            click.echo(f"Cursor set to {from_block - 1}; the next run starts at block {from_block}")
        finally:
            await store.close()

    asyncio.run(_replay())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
