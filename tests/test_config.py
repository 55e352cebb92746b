"""
Tests for session configuration.
"""

import logging
from pathlib import Path

import pytest

from wallet_session.config import (
    DEFAULT_CHAIN_ID,
    DEFAULT_RPC_URL,
    SessionConfig,
)


class TestSessionConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        """Test the default network and retry policy."""
        config = SessionConfig()

        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.indexer_url == DEFAULT_RPC_URL
        assert config.chain_id == DEFAULT_CHAIN_ID == 11155111
        assert config.history_max_attempts == 3
        assert config.history_retry_delay == 2.0
        assert config.state_path.name == "state.json"

    def test_indexer_defaults_to_rpc(self):
        """Test the indexer shares the RPC endpoint unless set."""
        assert SessionConfig(rpc_url="http://a").indexer_url == "http://a"
        assert SessionConfig(rpc_url="http://a", indexer_url="http://b").indexer_url == "http://b"

    def test_state_path_expanded(self):
        """Test string paths and ~ are accepted."""
        config = SessionConfig(state_path="~/wallet.json")
        assert isinstance(config.state_path, Path)
        assert "~" not in str(config.state_path)

    @pytest.mark.parametrize("kwargs", [
        {"history_max_attempts": 0},
        {"history_retry_delay": -1.0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            SessionConfig(**kwargs)

    def test_explorer_tx_url(self):
        """Test explorer links are built from the base URL."""
        config = SessionConfig(explorer_url="https://sepolia.etherscan.io/")
        assert config.explorer_tx_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"


class TestFromEnv:
    """Tests for environment configuration."""

    def test_reads_prefixed_variables(self, tmp_path):
        """Test WALLET_SESSION_* variables are applied."""
        environ = {
            "WALLET_SESSION_RPC_URL": "http://node",
            "WALLET_SESSION_INDEXER_URL": "http://indexer",
            "WALLET_SESSION_CHAIN_ID": "1",
            "WALLET_SESSION_STATE_PATH": str(tmp_path / "s.json"),
            "WALLET_SESSION_HISTORY_MAX_ATTEMPTS": "5",
            "WALLET_SESSION_HISTORY_RETRY_DELAY": "0.5",
            "WALLET_SESSION_REQUEST_TIMEOUT": "10",
            "WALLET_SESSION_DEBUG": "true",
        }
        config = SessionConfig.from_env(environ)

        assert config.rpc_url == "http://node"
        assert config.indexer_url == "http://indexer"
        assert config.chain_id == 1
        assert config.state_path == tmp_path / "s.json"
        assert config.history_max_attempts == 5
        assert config.history_retry_delay == 0.5
        assert config.request_timeout == 10.0
        assert config.debug is True

    def test_empty_environment_uses_defaults(self):
        """Test unset and empty variables fall back to defaults."""
        config = SessionConfig.from_env({"WALLET_SESSION_RPC_URL": ""})
        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.debug is False

    def test_apply_logging(self):
        """Test debug raises the package logger to DEBUG."""
        logger = logging.getLogger("wallet_session")
        previous = logger.level
        try:
            SessionConfig(debug=True).apply_logging()
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)
