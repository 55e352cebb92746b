"""
Tests for the structured error model.
"""

import pytest

from wallet_session.runtime.errors import (
    ConnectorError,
    ErrorCode,
    InvalidAddress,
    InvalidKeyMaterial,
    InvalidRecoveryPhrase,
    LedgerError,
    ProviderUnavailable,
    StorageCorruptionError,
    UnknownIdentity,
    UserRejected,
    ValidationError,
    WalletSessionError,
    error_from_rpc_response,
)


class TestErrorHierarchy:
    """Tests for error classes and codes."""

    @pytest.mark.parametrize("error_cls,parent,code", [
        (InvalidRecoveryPhrase, ValidationError, ErrorCode.INVALID_RECOVERY_PHRASE),
        (InvalidKeyMaterial, ValidationError, ErrorCode.INVALID_KEY_MATERIAL),
        (InvalidAddress, ValidationError, ErrorCode.INVALID_ADDRESS),
        (UnknownIdentity, ValidationError, ErrorCode.UNKNOWN_IDENTITY),
        (UserRejected, ConnectorError, ErrorCode.USER_REJECTED),
        (ProviderUnavailable, ConnectorError, ErrorCode.PROVIDER_UNAVAILABLE),
        (StorageCorruptionError, WalletSessionError, ErrorCode.STORAGE_CORRUPTION),
    ])
    def test_default_codes(self, error_cls, parent, code):
        """Test each error has its default message and code."""
        error = error_cls()
        assert isinstance(error, parent)
        assert error.code == code
        assert error.message

    def test_str_includes_details_and_cause(self):
        """Test the rendered message."""
        cause = ValueError("boom")
        error = LedgerError("call failed", details={"method": "eth_call"}, cause=cause)

        assert str(error) == "[LEDGER_ERROR] call failed | Details: {'method': 'eth_call'} | Caused by: boom"

    def test_to_dict(self):
        """Test dictionary form."""
        error = UnknownIdentity(details={"address": "0xAAA"})

        assert error.to_dict() == {
            "code": ErrorCode.UNKNOWN_IDENTITY.value,
            "message": "Unknown identity",
            "details": {"address": "0xAAA"},
        }


class TestRpcErrors:
    """Tests for JSON-RPC error extraction."""

    def test_no_error(self):
        assert error_from_rpc_response({"jsonrpc": "2.0", "id": 1, "result": "0x0"}) is None
        assert error_from_rpc_response({"error": None}) is None

    def test_structured_error(self):
        """Test code, message and data are carried over."""
        error = error_from_rpc_response({"error": {"code": -32000, "message": "execution reverted",
                                                   "data": "0x08c379a0"}})

        assert isinstance(error, LedgerError)
        assert error.code == ErrorCode.RPC_ERROR
        assert error.message == "execution reverted"
        assert error.details == {"rpcCode": -32000, "data": "0x08c379a0"}

    def test_unstructured_error(self):
        """Test a bare string error still yields a LedgerError."""
        error = error_from_rpc_response({"error": "rate limited"})
        assert error.message == "rate limited"

