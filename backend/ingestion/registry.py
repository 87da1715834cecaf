from __future__ import annotations

from typing import Iterable

from loguru import logger

from app import crud

from .normalize import format_address, parse_hex_felt, to_fixed_hex
from .service import SessionScope


class AddressRegistryError(RuntimeError):
    """Raised when a stored contract address cannot be parsed as a felt."""


def normalize_contract_address(address: str) -> str:
    try:
        felt = parse_hex_felt(address)
    except ValueError as exc:
        raise AddressRegistryError(f"Invalid contract address: {address!r}") from exc
    return format_address(to_fixed_hex(felt))


class AddressRegistry:
    """List the contract addresses recorded in the ``events`` table."""

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    def list_active_addresses(self) -> list[str]:
        with self._session_scope() as session:
            stored = crud.list_active_event_addresses(session)
        return self._normalize(stored)

    def list_all_addresses(self) -> list[str]:
        """Every stored address, resolved or not; used when replaying blocks."""

        with self._session_scope() as session:
            stored = crud.list_event_addresses(session)
        return self._normalize(stored)

    @staticmethod
    def _normalize(stored: Iterable[str]) -> list[str]:
        addresses: list[str] = []
        for address in stored:
            normalized = normalize_contract_address(address)
            logger.info("Fetched contract address: {} (normalized: {})", address, normalized)
            addresses.append(normalized)
        return addresses
