from __future__ import annotations

import itertools
from typing import Any, Sequence

import httpx
from loguru import logger

from app.domain import EventsPage, RawEvent


class RpcError(RuntimeError):
    """Raised when the node answers with a JSON-RPC error or an unusable payload."""

    def __init__(self, method: str, message: str, *, code: int | None = None) -> None:
        super().__init__(f"{method} failed: {message}" + (f" (code {code})" if code is not None else ""))
        self.method = method
        self.code = code


def _parse_block_number(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


class StarknetRpcClient:
    """Thin JSON-RPC wrapper around the Starknet node endpoints the sync needs."""

    def __init__(
        self,
        *,
        endpoint: str,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)
        self._ids = itertools.count(1)

    def _call(self, method: str, params: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug("Starknet RPC {} params={}", method, params)
        response = self.client.post(self.endpoint, json=payload)
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise RpcError(method, "response body is not JSON") from exc

        if not isinstance(body, dict):
            raise RpcError(method, "response body is not a JSON object")
        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(method, str(error.get("message", error)), code=error.get("code"))
            raise RpcError(method, str(error))
        if "result" not in body:
            raise RpcError(method, "response is missing a result")
        return body["result"]

    def block_number(self) -> int:
        result = self._call("starknet_blockNumber", [])
        block = _parse_block_number(result)
        if block is None:
            raise RpcError("starknet_blockNumber", f"unexpected result {result!r}")
        return block

    def get_events(
        self,
        *,
        from_block: int,
        to_block: int,
        address: str,
        keys: Sequence[Sequence[str]],
        chunk_size: int,
        continuation_token: str | None = None,
    ) -> EventsPage:
        event_filter: dict[str, Any] = {
            "from_block": {"block_number": from_block},
            "to_block": {"block_number": to_block},
            "address": address,
            "keys": [list(group) for group in keys],
            "chunk_size": chunk_size,
        }
        if continuation_token:
            event_filter["continuation_token"] = continuation_token

        result = self._call("starknet_getEvents", {"filter": event_filter})
        if not isinstance(result, dict) or not isinstance(result.get("events"), list):
            raise RpcError("starknet_getEvents", "result is missing an events list")

        events: list[RawEvent] = []
        for item in result["events"]:
            if not isinstance(item, dict):
                continue
            events.append(
                RawEvent(
                    from_address=str(item.get("from_address") or address),
                    block_number=_parse_block_number(item.get("block_number")),
                    data=_as_str_list(item.get("data")),
                    keys=_as_str_list(item.get("keys")),
                    transaction_hash=item.get("transaction_hash"),
                    block_hash=item.get("block_hash"),
                )
            )
        return EventsPage(events=events, continuation_token=result.get("continuation_token") or None)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "StarknetRpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
