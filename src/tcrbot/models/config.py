"""Configuration models for the bot daemon."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TokenConfig:
    """Token amounts are configured in human units and converted at the edge."""

    decimals: int = 18
    symbol: str = "TCRP"
    initial_mint: int = 1550  # minted into every new custodial wallet
    initial_vote_deposit: int = 50  # locked into the voting contract
    min_deposit: int = 500  # retained on a listing when releasing rewards


@dataclass
class BotConfig:
    """Complete daemon configuration."""

    # Daemon
    poll_interval: int = 5  # seconds
    error_backoff: int = 30  # seconds
    log_level: str = "info"
    preregistration: bool = False  # suppress wallet-ready DMs before launch

    # Ethereum
    rpc_url: str = "http://127.0.0.1:8545"
    chain_id: int | None = None  # queried from the node when unset
    private_key: str = ""  # custodial minter key, env TCRBOT_PRIVATE_KEY
    token_address: str = ""
    registry_address: str = ""
    plcr_address: str = ""
    wallet_factory_address: str = ""
    start_block: int | None = None
    block_window: int = 1000  # max blocks per get_logs call
    confirmations: int = 1  # required confirmation depth
    confirmation_timeout: float = 300.0  # seconds
    confirmation_poll_interval: float = 2.0  # seconds
    confirmation_max_attempts: int = 150
    gas_limit: int = 500_000

    # Twitter
    twitter_api_url: str = "https://api.twitter.com/2"
    twitter_token: str = ""  # OAuth2 user token, env TCRBOT_TWITTER_TOKEN
    twitter_timeout: int = 15  # seconds

    # Storage
    db_path: str = "~/.tcrbot/state.db"

    tokens: TokenConfig = field(default_factory=TokenConfig)
