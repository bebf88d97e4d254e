"""
clients.py - HTTP boundary to the node under test.

Two thin async clients, one per external system:

    GraphQLClient  - "poke": the node's GraphQL API used to change state
                     (disable staking, unlock the sender, send a payment)
    RosettaClient  - "peek": the standardized Rosetta Data API used to
                     observe the effects (networks, sync status, mempool)

Both raise `TransportError` when a call fails and `ShapeError` when a
response cannot be understood. Nothing here retries; polling belongs to
retry.py and the scenario.
"""

from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from errors import ShapeError, TransportError
from logging_config import get_logger
from models import MempoolTransaction, NetworkIdentifier, NetworkStatus

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_TIMEOUT_S = 10.0
MAX_ERROR_BODY_CHARS = 300

SET_STAKING_MUTATION = """
mutation ($publicKeys: [PublicKey!]!) {
  setStaking(input: {publicKeys: $publicKeys}) {
    lastStaking
  }
}
"""

UNLOCK_ACCOUNT_MUTATION = """
mutation ($publicKey: PublicKey!, $password: String!) {
  unlockAccount(input: {publicKey: $publicKey, password: $password}) {
    publicKey
  }
}
"""

SEND_PAYMENT_MUTATION = """
mutation ($from: PublicKey!, $to: PublicKey!, $amount: UInt64!, $fee: UInt64!, $memo: String) {
  sendPayment(input: {from: $from, to: $to, amount: $amount, fee: $fee, memo: $memo}) {
    payment {
      hash
    }
  }
}
"""


def _parse(model: Type[M], data: Any, what: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ShapeError(f"Unexpected {what} response: {exc.error_count()} validation error(s): {exc}") from exc


def _dig(data: Any, *keys: str, what: str) -> Any:
    """Walk nested dict keys, raising ShapeError at the first missing one."""
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            raise ShapeError(f"Unexpected {what} response: missing '{'.'.join(keys)}'")
        current = current[key]
    return current


class _JsonClient:
    """Shared POST-JSON plumbing over one httpx.AsyncClient."""

    def __init__(
        self,
        uri: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.uri = uri.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"accept": "application/json"},
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.uri}{path}"
        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.debug("http_error | url=%s | error_type=%s | error=%s", url, type(exc).__name__, exc)
            raise TransportError(f"POST {url} failed: {type(exc).__name__}: {exc}") from exc

        if response.is_error:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            logger.debug("http_status_error | url=%s | status=%s | body=%r", url, response.status_code, body)
            raise TransportError(
                f"POST {url} returned HTTP {response.status_code}: {body}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ShapeError(f"POST {url} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ShapeError(f"POST {url} returned {type(data).__name__}, expected a JSON object")
        return data


class GraphQLClient(_JsonClient):
    """Transaction-submission side: mutations against the node's GraphQL API."""

    async def _execute(self, query: str, variables: dict[str, Any], what: str) -> dict[str, Any]:
        data = await self._post("", {"query": query, "variables": variables})
        errors = data.get("errors")
        if errors:
            messages = [str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors]
            raise TransportError(f"GraphQL {what} failed: {'; '.join(messages)}")
        result = data.get("data")
        if not isinstance(result, dict):
            raise ShapeError(f"GraphQL {what} returned no data")
        return result

    async def disable_staking(self) -> list[str]:
        """Stop block production so sent transactions stay in the mempool."""
        result = await self._execute(SET_STAKING_MUTATION, {"publicKeys": []}, "setStaking")
        last_staking = _dig(result, "setStaking", "lastStaking", what="setStaking")
        logger.debug("staking_disabled | previously_staking=%s", last_staking)
        return list(last_staking or [])

    async def unlock_account(self, public_key: str, password: str) -> str:
        result = await self._execute(
            UNLOCK_ACCOUNT_MUTATION,
            {"publicKey": public_key, "password": password},
            "unlockAccount",
        )
        return str(_dig(result, "unlockAccount", "publicKey", what="unlockAccount"))

    async def send_payment(
        self,
        *,
        sender: str,
        receiver: str,
        amount: int,
        fee: int,
        memo: Optional[str] = None,
    ) -> str:
        """Send a payment and return its transaction hash."""
        # UInt64 scalars travel as decimal strings.
        variables = {
            "from": sender,
            "to": receiver,
            "amount": str(amount),
            "fee": str(fee),
            "memo": memo,
        }
        result = await self._execute(SEND_PAYMENT_MUTATION, variables, "sendPayment")
        payment_hash = _dig(result, "sendPayment", "payment", "hash", what="sendPayment")
        if not isinstance(payment_hash, str) or not payment_hash:
            raise ShapeError("GraphQL sendPayment returned an empty hash")
        return payment_hash


class RosettaClient(_JsonClient):
    """Chain-query side: the Rosetta Data API."""

    async def list_networks(self) -> list[NetworkIdentifier]:
        data = await self._post("/network/list", {"metadata": {}})
        raw = _dig(data, "network_identifiers", what="/network/list")
        if not isinstance(raw, list):
            raise ShapeError("Unexpected /network/list response: 'network_identifiers' is not a list")
        return [_parse(NetworkIdentifier, item, "/network/list") for item in raw]

    async def network_status(self, network: NetworkIdentifier) -> NetworkStatus:
        data = await self._post("/network/status", {"network_identifier": network.to_wire()})
        return _parse(NetworkStatus, data, "/network/status")

    async def mempool(self, network: NetworkIdentifier) -> list[str]:
        """Hashes of the transactions currently in the mempool."""
        data = await self._post("/mempool", {"network_identifier": network.to_wire()})
        raw = _dig(data, "transaction_identifiers", what="/mempool")
        if not isinstance(raw, list):
            raise ShapeError("Unexpected /mempool response: 'transaction_identifiers' is not a list")
        hashes: list[str] = []
        for item in raw:
            if isinstance(item, dict) and isinstance(item.get("hash"), str):
                hashes.append(item["hash"])
            else:
                raise ShapeError(f"Unexpected /mempool response: bad transaction identifier {item!r}")
        return hashes

    async def mempool_transaction(self, network: NetworkIdentifier, transaction_hash: str) -> MempoolTransaction:
        data = await self._post(
            "/mempool/transaction",
            {
                "network_identifier": network.to_wire(),
                "transaction_identifier": {"hash": transaction_hash},
            },
        )
        raw = _dig(data, "transaction", what="/mempool/transaction")
        return _parse(MempoolTransaction, raw, "/mempool/transaction")
