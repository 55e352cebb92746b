"""
Ledger query client.

Balance, token, transaction and transfer-submission calls against an
Ethereum JSON-RPC node. These calls never retry; failures propagate to the
caller as ``LedgerError`` or a ``ValidationError`` subclass.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence
import asyncio
import functools
import itertools
import logging
import re

import requests
from eth_abi import decode as abi_decode, encode as abi_encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

from ..config import SessionConfig
from ..runtime.errors import (
    ErrorCode,
    InvalidAddress,
    InvalidKeyMaterial,
    LedgerError,
    ValidationError,
    error_from_rpc_response,
)

logger = logging.getLogger(__name__)

ETHER_DECIMALS = 18
GWEI_DECIMALS = 9
_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class TokenBalance:
    amount: str
    symbol: str


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int
    total_supply: str


@dataclass(frozen=True)
class TransactionDetails:
    """Transaction summary in display units (ether, gwei)."""
    hash: str
    from_address: str
    to_address: Optional[str]
    value: str
    gas_price: str
    gas_limit: Optional[str]
    nonce: Optional[int]
    status: str
    block_number: Optional[int]
    confirmations: int


@dataclass(frozen=True)
class TxHandle:
    """A submitted transaction."""
    hash: str
    from_address: str
    to_address: str
    nonce: int


def format_units(value: int, decimals: int) -> str:
    """
    Render an integer amount in display units.

    ``format_units(1500000000000000000, 18) == "1.5"``; whole numbers keep
    one decimal place (``"2.0"``).
    """
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10 ** decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{sign}{whole}.{fraction_str or '0'}"


def parse_units(amount: str, decimals: int) -> int:
    """
    Convert a positive decimal string to integer base units.

    Raises:
        ValidationError: If the amount is malformed, not positive, or more
            precise than ``decimals`` allows
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {amount!r}", ErrorCode.INVALID_AMOUNT)
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"Amount must be positive: {amount!r}", ErrorCode.INVALID_AMOUNT)

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"Amount {amount!r} has more than {decimals} decimal places",
            ErrorCode.INVALID_AMOUNT
        )
    return int(scaled)


def require_address(address: str) -> str:
    """
    Validate an account address and return its checksummed form.

    Raises:
        InvalidAddress: If the address is malformed
    """
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddress(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def _hex_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return int(value, 16)


class LedgerClient(ABC):
    """
    Abstract ledger query collaborator.
    """

    @abstractmethod
    async def get_native_balance(self, address: str) -> str:
        """Native balance as a decimal string in ether."""
        pass

    @abstractmethod
    async def get_token_balance(self, token: str, address: str) -> TokenBalance:
        """Token balance of ``address`` in display units."""
        pass

    @abstractmethod
    async def get_token_metadata(self, token: str) -> TokenMetadata:
        """Token name, symbol, decimals and total supply."""
        pass

    @abstractmethod
    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[TransactionDetails]:
        """Transaction details, or None if the node does not know the hash."""
        pass

    @abstractmethod
    async def submit_native_transfer(self, key_material: str, to: str, amount: str) -> TxHandle:
        """Sign and submit a native transfer of ``amount`` ether."""
        pass

    @abstractmethod
    async def submit_token_transfer(self, key_material: str, token: str, to: str, amount: str) -> TxHandle:
        """Sign and submit an ERC-20 transfer of ``amount`` tokens."""
        pass


class JsonRpcLedgerClient(LedgerClient):
    """
    Ledger client speaking Ethereum JSON-RPC over ``requests``.

    Blocking HTTP runs on the event loop's default executor so callers can
    await every query.
    """

    def __init__(
        self,
        endpoint: str,
        chain_id: int,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize ledger client.

        Args:
            endpoint: JSON-RPC endpoint URL
            chain_id: Chain id used when signing transactions
            timeout: Request timeout in seconds
            session: Optional shared requests.Session
        """
        self.endpoint = endpoint
        self.chain_id = chain_id
        self.timeout = timeout
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

        # Transport for testing - if set, receives the JSON-RPC payload and
        # returns the decoded response body instead of making an HTTP call
        self.transport: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None

    @classmethod
    def from_config(cls, config: SessionConfig) -> JsonRpcLedgerClient:
        return cls(config.rpc_url, config.chain_id, timeout=config.request_timeout)

    def close(self):
        if self._owns_session:
            self._session.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _make_request(self, method: str, params: List[Any]) -> Any:
        """
        Make one JSON-RPC request. No retries.

        Raises:
            LedgerError: On transport failures and JSON-RPC errors
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }

        if self.transport is not None:
            body = self.transport(payload)
        else:
            try:
                response = self._session.post(self.endpoint, json=payload, timeout=self.timeout)
                response.raise_for_status()
                body = response.json()
            except requests.RequestException as e:
                raise LedgerError(f"{method} failed: {e}", cause=e)
            except ValueError as e:
                raise LedgerError(f"{method} returned malformed JSON", cause=e)

        error = error_from_rpc_response(body)
        if error is not None:
            error.details["method"] = method
            raise error
        return body.get("result")

    async def _call(self, method: str, *params: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self._make_request, method, list(params)))

    async def _call_contract(self, contract: str, signature: str, out_types: Sequence[str],
                             arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> Any:
        data = function_signature_to_4byte_selector(signature) + abi_encode(list(arg_types), list(args))
        result = await self._call("eth_call", {"to": contract, "data": "0x" + data.hex()}, "latest")
        if not result or result == "0x":
            raise LedgerError(f"{signature} returned no data; is {contract} a token contract?",
                              details={"contract": contract})
        try:
            decoded = abi_decode(list(out_types), bytes.fromhex(result[2:]))
        except Exception as e:
            raise LedgerError(f"Could not decode {signature} result", cause=e)
        return decoded[0] if len(decoded) == 1 else decoded

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_native_balance(self, address: str) -> str:
        address = require_address(address)
        wei = _hex_int(await self._call("eth_getBalance", address, "latest"))
        return format_units(wei or 0, ETHER_DECIMALS)

    async def get_token_balance(self, token: str, address: str) -> TokenBalance:
        token = require_address(token)
        address = require_address(address)
        balance, decimals, symbol = await asyncio.gather(
            self._call_contract(token, "balanceOf(address)", ["uint256"], ["address"], [address]),
            self._call_contract(token, "decimals()", ["uint8"]),
            self._call_contract(token, "symbol()", ["string"]),
        )
        return TokenBalance(amount=format_units(balance, decimals), symbol=symbol)

    async def get_token_metadata(self, token: str) -> TokenMetadata:
        token = require_address(token)
        name, symbol, decimals, total_supply = await asyncio.gather(
            self._call_contract(token, "name()", ["string"]),
            self._call_contract(token, "symbol()", ["string"]),
            self._call_contract(token, "decimals()", ["uint8"]),
            self._call_contract(token, "totalSupply()", ["uint256"]),
        )
        return TokenMetadata(
            name=name,
            symbol=symbol,
            decimals=decimals,
            total_supply=format_units(total_supply, decimals),
        )

    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[TransactionDetails]:
        if not isinstance(tx_hash, str) or not _TX_HASH_RE.match(tx_hash):
            raise ValidationError(f"Invalid transaction hash: {tx_hash!r}")

        tx = await self._call("eth_getTransactionByHash", tx_hash)
        if tx is None:
            return None
        receipt, latest = await asyncio.gather(
            self._call("eth_getTransactionReceipt", tx_hash),
            self._call("eth_blockNumber"),
        )

        block_number = _hex_int(tx.get("blockNumber"))
        if receipt is None:
            status = "Pending"
        elif _hex_int(receipt.get("status")) == 1:
            status = "Success"
        else:
            status = "Failed"
        confirmations = 0
        if block_number is not None and latest is not None:
            confirmations = max(_hex_int(latest) - block_number + 1, 0)

        gas_limit = _hex_int(tx.get("gas"))
        return TransactionDetails(
            hash=tx["hash"],
            from_address=tx["from"],
            to_address=tx.get("to"),
            value=format_units(_hex_int(tx.get("value")) or 0, ETHER_DECIMALS),
            gas_price=format_units(_hex_int(tx.get("gasPrice")) or 0, GWEI_DECIMALS),
            gas_limit=str(gas_limit) if gas_limit is not None else None,
            nonce=_hex_int(tx.get("nonce")),
            status=status,
            block_number=block_number,
            confirmations=confirmations,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @staticmethod
    def _account(key_material: str):
        try:
            return Account.from_key(key_material)
        except Exception:
            # The underlying message may echo the key
            raise InvalidKeyMaterial() from None

    async def _sign_and_send(self, account, tx: Dict[str, Any]) -> TxHandle:
        nonce, gas_price = await asyncio.gather(
            self._call("eth_getTransactionCount", account.address, "pending"),
            self._call("eth_gasPrice"),
        )
        estimate_request = {"from": account.address, "to": tx["to"], "value": hex(tx["value"])}
        if "data" in tx:
            estimate_request["data"] = tx["data"]
        gas = await self._call("eth_estimateGas", estimate_request)

        tx = dict(tx, nonce=_hex_int(nonce), gasPrice=_hex_int(gas_price),
                  gas=_hex_int(gas), chainId=self.chain_id)
        signed = account.sign_transaction(tx)
        tx_hash = await self._call("eth_sendRawTransaction", "0x" + bytes(signed.raw_transaction).hex())

        logger.info(f"Submitted transaction {tx_hash} from {account.address}")
        return TxHandle(hash=tx_hash, from_address=account.address, to_address=tx["to"], nonce=tx["nonce"])

    async def submit_native_transfer(self, key_material: str, to: str, amount: str) -> TxHandle:
        to = require_address(to)
        value = parse_units(amount, ETHER_DECIMALS)
        account = self._account(key_material)
        return await self._sign_and_send(account, {"to": to, "value": value})

    async def submit_token_transfer(self, key_material: str, token: str, to: str, amount: str) -> TxHandle:
        token = require_address(token)
        to = require_address(to)
        account = self._account(key_material)
        decimals = await self._call_contract(token, "decimals()", ["uint8"])
        value = parse_units(amount, decimals)

        data = function_signature_to_4byte_selector("transfer(address,uint256)") + \
            abi_encode(["address", "uint256"], [to, value])
        return await self._sign_and_send(account, {"to": token, "value": 0, "data": "0x" + data.hex()})

    def __repr__(self) -> str:
        return f"JsonRpcLedgerClient(endpoint='{self.endpoint}', chain_id={self.chain_id})"


__all__ = [
    "LedgerClient",
    "JsonRpcLedgerClient",
    "TokenBalance",
    "TokenMetadata",
    "TransactionDetails",
    "TxHandle",
    "format_units",
    "parse_units",
    "require_address",
]
