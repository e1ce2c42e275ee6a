"""Configuration loading: TOML file + environment variables + deployments.json."""

from __future__ import annotations

import json
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from tcrbot.models.config import BotConfig, TokenConfig

_TRUE = {"1", "true", "yes", "on"}


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUE


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "TCRBOT_",
) -> BotConfig:
    """Load bot configuration from TOML file, env vars, and deployments.json.

    Priority (highest wins):
        1. Environment variables (TCRBOT_PRIVATE_KEY, etc.)
        2. TOML config file
        3. Defaults from BotConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = BotConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("poll_interval"):
        cfg.poll_interval = int(v)
    if v := daemon.get("error_backoff"):
        cfg.error_backoff = int(v)
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)
    if "preregistration" in daemon:
        cfg.preregistration = bool(daemon["preregistration"])

    # ── Ethereum section ───────────────────────────────────
    eth = raw.get("ethereum", {})
    if v := eth.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := eth.get("chain_id"):
        cfg.chain_id = int(v)
    if v := eth.get("private_key"):
        cfg.private_key = str(v)
    if v := eth.get("token_address"):
        cfg.token_address = str(v)
    if v := eth.get("registry_address"):
        cfg.registry_address = str(v)
    if v := eth.get("plcr_address"):
        cfg.plcr_address = str(v)
    if v := eth.get("wallet_factory_address"):
        cfg.wallet_factory_address = str(v)
    if (v := eth.get("start_block")) is not None:
        cfg.start_block = int(v)
    if v := eth.get("block_window"):
        cfg.block_window = int(v)
    if v := eth.get("confirmations"):
        cfg.confirmations = int(v)
    if v := eth.get("confirmation_timeout"):
        cfg.confirmation_timeout = float(v)
    if v := eth.get("confirmation_poll_interval"):
        cfg.confirmation_poll_interval = float(v)
    if v := eth.get("confirmation_max_attempts"):
        cfg.confirmation_max_attempts = int(v)
    if v := eth.get("gas_limit"):
        cfg.gas_limit = int(v)

    # Load contract addresses from deployments.json if not explicitly set
    deployments_path = eth.get("deployments_path", "deployments.json")
    if not cfg.registry_address:
        _load_deployments(cfg, deployments_path)

    # ── Tokens section ─────────────────────────────────────
    tokens = raw.get("tokens", {})
    cfg.tokens = TokenConfig(
        decimals=tokens.get("decimals", 18),
        symbol=tokens.get("symbol", "TCRP"),
        initial_mint=tokens.get("initial_mint", 1550),
        initial_vote_deposit=tokens.get("initial_vote_deposit", 50),
        min_deposit=tokens.get("min_deposit", 500),
    )

    # ── Twitter section ────────────────────────────────────
    twitter = raw.get("twitter", {})
    if v := twitter.get("api_url"):
        cfg.twitter_api_url = str(v)
    if v := twitter.get("token"):
        cfg.twitter_token = str(v)
    if v := twitter.get("timeout"):
        cfg.twitter_timeout = int(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if key := os.environ.get(f"{env_prefix}PRIVATE_KEY"):
        cfg.private_key = key
    if token := os.environ.get(f"{env_prefix}TWITTER_TOKEN"):
        cfg.twitter_token = token
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    # PREREGISTRATION=true is honored for existing deployments
    prereg = os.environ.get(f"{env_prefix}PREREGISTRATION", os.environ.get("PREREGISTRATION"))
    if prereg is not None:
        cfg.preregistration = _flag(prereg)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _load_deployments(cfg: BotConfig, deployments_path: str) -> None:
    """Load contract addresses from a deployments.json written by the deploy scripts."""
    p = Path(deployments_path).expanduser()
    if not p.is_absolute():
        # Try relative to CWD
        p = Path.cwd() / p
    if not p.exists():
        return

    with open(p) as f:
        data = json.load(f)

    for key, attr in (
        ("token", "token_address"),
        ("registry", "registry_address"),
        ("plcr", "plcr_address"),
        ("wallet_factory", "wallet_factory_address"),
    ):
        if address := data.get(key, {}).get("address"):
            setattr(cfg, attr, address)
