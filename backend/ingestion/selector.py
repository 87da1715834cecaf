"""Starknet selector derivation for entry point and event names."""

from __future__ import annotations

from web3 import Web3

# Starknet keccak keeps the low 250 bits of keccak256.
MASK_250 = (1 << 250) - 1
DEFAULT_ENTRY_POINT_NAMES = frozenset({"__default__", "__l1_default__"})


def starknet_keccak(data: bytes) -> int:
    return int.from_bytes(Web3.keccak(data), "big") & MASK_250


def get_selector_from_name(name: str) -> int:
    if name in DEFAULT_ENTRY_POINT_NAMES:
        return 0
    return starknet_keccak(name.encode("ascii"))


def selector_hex(name: str) -> str:
    return hex(get_selector_from_name(name))
