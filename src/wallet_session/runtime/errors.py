"""
Wallet Session Error Model

Structured error hierarchy for the identity registry, session coordinator,
persistence gateway and history engine. Every error carries a stable
``ErrorCode`` so UI layers can map failures to user-facing messages.
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from enum import IntEnum


class ErrorCode(IntEnum):
    """Wallet session error codes."""

    # Success
    OK = 0

    # General errors (1-99)
    UNKNOWN = 1
    INTERNAL = 2

    # Validation errors (100-199)
    VALIDATION_ERROR = 100
    INVALID_RECOVERY_PHRASE = 101
    INVALID_KEY_MATERIAL = 102
    INVALID_ADDRESS = 103
    UNKNOWN_IDENTITY = 104
    INVALID_AMOUNT = 105

    # Connector errors (200-299)
    CONNECTOR_ERROR = 200
    USER_REJECTED = 201
    PROVIDER_UNAVAILABLE = 202

    # Network errors (300-399)
    NETWORK_TRANSIENT = 300
    TIMEOUT = 301
    SERVICE_UNAVAILABLE = 302

    # Ledger errors (400-499)
    LEDGER_ERROR = 400
    RPC_ERROR = 401

    # Storage errors (500-599)
    STORAGE_CORRUPTION = 500


class WalletSessionError(Exception):
    """
    Base class for all wallet session errors.

    Provides structured error information (code, details, cause).
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        """
        Initialize a wallet session error.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{self.code.name}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(WalletSessionError):
    """Malformed phrase, key, address or amount. Never retried."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.VALIDATION_ERROR,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class InvalidRecoveryPhrase(ValidationError):
    """Recovery phrase failed word-list or checksum validation."""

    def __init__(self, message: str = "Invalid recovery phrase",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.INVALID_RECOVERY_PHRASE, details, cause)


class InvalidKeyMaterial(ValidationError):
    """Raw key material is malformed."""

    def __init__(self, message: str = "Invalid key material",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.INVALID_KEY_MATERIAL, details, cause)


class InvalidAddress(ValidationError):
    """Address is not a well-formed account address."""

    def __init__(self, message: str = "Invalid address",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.INVALID_ADDRESS, details, cause)


class UnknownIdentity(ValidationError):
    """Address is not present in the identity registry."""

    def __init__(self, message: str = "Unknown identity",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.UNKNOWN_IDENTITY, details, cause)


class ConnectorError(WalletSessionError):
    """External wallet connector failures. Retried only on user request."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.CONNECTOR_ERROR,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class UserRejected(ConnectorError):
    """The user declined the connector request."""

    def __init__(self, message: str = "User rejected the request",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.USER_REJECTED, details, cause)


class ProviderUnavailable(ConnectorError):
    """No wallet extension is installed, or the provider faulted."""

    def __init__(self, message: str = "Wallet provider unavailable",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.PROVIDER_UNAVAILABLE, details, cause)


class NetworkTransientError(WalletSessionError):
    """Remote indexer timeout or 5xx response."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.NETWORK_TRANSIENT,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class LedgerError(WalletSessionError):
    """Ledger node returned an error or could not be reached."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.LEDGER_ERROR,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class StorageCorruptionError(WalletSessionError):
    """Persisted state could not be read or decoded."""

    def __init__(self, message: str = "Stored state is corrupted",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.STORAGE_CORRUPTION, details, cause)


def error_from_rpc_response(response: Dict[str, Any]) -> Optional[LedgerError]:
    """
    Create a ledger error from a JSON-RPC response.

    Args:
        response: Decoded JSON-RPC response

    Returns:
        LedgerError instance or None if the response carries no error
    """
    if "error" not in response or response["error"] is None:
        return None

    error_data = response["error"]
    if not isinstance(error_data, dict):
        return LedgerError(str(error_data), ErrorCode.RPC_ERROR)

    message = error_data.get("message", "Unknown error")
    details = {"rpcCode": error_data.get("code")}
    if error_data.get("data") is not None:
        details["data"] = error_data["data"]
    return LedgerError(message, ErrorCode.RPC_ERROR, details)


__all__ = [
    "ErrorCode",
    "WalletSessionError",
    "ValidationError",
    "InvalidRecoveryPhrase",
    "InvalidKeyMaterial",
    "InvalidAddress",
    "UnknownIdentity",
    "ConnectorError",
    "UserRejected",
    "ProviderUnavailable",
    "NetworkTransientError",
    "LedgerError",
    "StorageCorruptionError",
    "error_from_rpc_response",
]
