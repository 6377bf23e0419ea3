"""Address and private-key helpers built on eth-account."""

from __future__ import annotations

import re

from eth_account import Account
from eth_keys.constants import SECPK1_N
from web3 import Web3

from agent_wallet.exceptions import AddressParseError, PrivateKeyFormatError

PRIVATE_KEY_SIZE = 32

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def _strip_hex_prefix(text: str) -> str:
    if text[:2] in ("0x", "0X"):
        return text[2:]
    return text


def parse_address(text: str) -> str:
    """Parse hex text (with or without ``0x``) into a checksummed address.

    Mixed-case input is accepted without verifying its checksum casing.
    """
    if not isinstance(text, str):
        raise AddressParseError(f"Address must be a string, got {type(text).__name__}")
    body = _strip_hex_prefix(text.strip())
    if not _HEX_RE.fullmatch(body):
        raise AddressParseError(f"Invalid address '{text}': non-hex characters")
    if len(body) != 40:
        raise AddressParseError(
            f"Invalid address '{text}': expected 40 hex characters, got {len(body)}"
        )
    return Web3.to_checksum_address("0x" + body.lower())


def format_checksum(address: str | bytes) -> str:
    """Render an address (hex text or 20 raw bytes) in EIP-55 mixed case."""
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:
            raise AddressParseError(
                f"Invalid address: expected 20 bytes, got {len(address)}"
            )
        return Web3.to_checksum_address(bytes(address))
    return parse_address(address)


def validate_private_key(key: bytes) -> None:
    """Check *key* is a usable secp256k1 scalar.

    Raises
    ------
    PrivateKeyFormatError
        If the key is not 32 bytes, is zero, or is not below the curve order.
    """
    if len(key) != PRIVATE_KEY_SIZE:
        raise PrivateKeyFormatError(
            f"Invalid private key format: expected {PRIVATE_KEY_SIZE} bytes, got {len(key)}"
        )
    scalar = int.from_bytes(key, "big")
    if scalar == 0:
        raise PrivateKeyFormatError("Invalid private key format: key is zero")
    if scalar >= SECPK1_N:
        raise PrivateKeyFormatError(
            "Invalid private key format: key is outside the secp256k1 curve order"
        )


def normalize_private_key(text: str) -> bytes:
    """Decode a private key given as hex text (``0x``-prefixed or raw).

    Surrounding whitespace is ignored. The offending value is never echoed
    back in the error message.
    """
    if not isinstance(text, str):
        raise PrivateKeyFormatError("Invalid private key format: expected hex text")
    body = _strip_hex_prefix(text.strip())
    if len(body) != PRIVATE_KEY_SIZE * 2:
        raise PrivateKeyFormatError(
            "Invalid private key format: expected 64 hex characters"
        )
    if not _HEX_RE.fullmatch(body):
        raise PrivateKeyFormatError(
            "Invalid private key format: non-hex characters"
        )
    key = bytes.fromhex(body)
    validate_private_key(key)
    return key


def derive_address(private_key: bytes) -> str:
    """Return the checksummed address controlled by *private_key*."""
    validate_private_key(private_key)
    return Account.from_key(private_key).address


def generate_private_key() -> bytes:
    """Create fresh key material from the OS random source."""
    return bytes(Account.create().key)


def private_key_to_hex(private_key: bytes) -> str:
    """Lowercase hex (no prefix), the on-disk form of a key."""
    return private_key.hex()
