"""tcrbot - Token-Curated Registry event bot with custodial voting wallets."""

__version__ = "0.1.0"
