"""
Session configuration.

Endpoints, retry policy and storage location for a wallet session. Values
can be supplied directly or read from ``WALLET_SESSION_*`` environment
variables.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_RPC_URL = "https://ethereum-sepolia-rpc.publicnode.com"
DEFAULT_CHAIN_ID = 11155111
DEFAULT_EXPLORER_URL = "https://sepolia.etherscan.io"
DEFAULT_STATE_PATH = Path.home() / ".wallet_session" / "state.json"

ENV_PREFIX = "WALLET_SESSION_"


def _default_state_path() -> Path:
    return DEFAULT_STATE_PATH


@dataclass
class SessionConfig:
    """Configuration for a wallet session."""

    rpc_url: str = DEFAULT_RPC_URL
    indexer_url: Optional[str] = None
    chain_id: int = DEFAULT_CHAIN_ID
    state_path: Path = field(default_factory=_default_state_path)
    history_max_attempts: int = 3
    history_retry_delay: float = 2.0
    request_timeout: float = 30.0
    explorer_url: str = DEFAULT_EXPLORER_URL
    debug: bool = False

    def __post_init__(self):
        self.state_path = Path(self.state_path).expanduser()
        if self.indexer_url is None:
            self.indexer_url = self.rpc_url
        if self.history_max_attempts < 1:
            raise ValueError("history_max_attempts must be at least 1")
        if self.history_retry_delay < 0:
            raise ValueError("history_retry_delay must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> SessionConfig:
        """
        Build a configuration from environment variables.

        Recognised variables (all optional): ``RPC_URL``, ``INDEXER_URL``,
        ``CHAIN_ID``, ``STATE_PATH``, ``HISTORY_MAX_ATTEMPTS``,
        ``HISTORY_RETRY_DELAY``, ``REQUEST_TIMEOUT``, ``EXPLORER_URL`` and
        ``DEBUG``, each prefixed with ``WALLET_SESSION_``.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        kwargs = {}
        if get("RPC_URL"):
            kwargs["rpc_url"] = get("RPC_URL")
        if get("INDEXER_URL"):
            kwargs["indexer_url"] = get("INDEXER_URL")
        if get("CHAIN_ID"):
            kwargs["chain_id"] = int(get("CHAIN_ID"))
        if get("STATE_PATH"):
            kwargs["state_path"] = Path(get("STATE_PATH"))
        if get("HISTORY_MAX_ATTEMPTS"):
            kwargs["history_max_attempts"] = int(get("HISTORY_MAX_ATTEMPTS"))
        if get("HISTORY_RETRY_DELAY"):
            kwargs["history_retry_delay"] = float(get("HISTORY_RETRY_DELAY"))
        if get("REQUEST_TIMEOUT"):
            kwargs["request_timeout"] = float(get("REQUEST_TIMEOUT"))
        if get("EXPLORER_URL"):
            kwargs["explorer_url"] = get("EXPLORER_URL")
        if get("DEBUG"):
            kwargs["debug"] = get("DEBUG").lower() in ("1", "true", "yes", "on")
        return cls(**kwargs)

    def explorer_tx_url(self, tx_hash: str) -> str:
        """Block explorer link for a transaction hash."""
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def apply_logging(self):
        """Raise the package logger to DEBUG when ``debug`` is set."""
        if self.debug:
            logging.getLogger("wallet_session").setLevel(logging.DEBUG)
