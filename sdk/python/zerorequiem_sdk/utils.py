"""
Utility functions for ZeroRequiem
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Union

from .errors import DecodingError

WEI_PER_ETHER = Decimal('1e18')


class Utils:
    """Helper utilities for byte handling and amount formatting"""

    @staticmethod
    def strip_hex(value: str) -> str:
        """Remove a leading 0x prefix if present"""
        return value[2:] if value[:2] in ('0x', '0X') else value

    @staticmethod
    def to_hex(data: bytes) -> str:
        """
        Encode bytes as a 0x-prefixed lowercase hex string.

        Example:
            >>> Utils.to_hex(b'\\x01\\xff')
            '0x01ff'
        """
        return '0x' + bytes(data).hex()

    @staticmethod
    def to_bytes(value: Union[str, bytes, bytearray]) -> bytes:
        """
        Accept bytes or a hex string (with or without 0x) and return bytes.

        Raises:
            DecodingError: If the string is not valid hex
        """
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        cleaned = Utils.strip_hex(value)
        try:
            return bytes.fromhex(cleaned)
        except ValueError as e:
            raise DecodingError(f"Invalid hex payload: {value!r}") from e

    @staticmethod
    def xor_bytes(a: bytes, b: bytes) -> bytes:
        """XOR two equal-length byte strings"""
        if len(a) != len(b):
            raise DecodingError(f"Length mismatch: {len(a)} != {len(b)}")
        return bytes(x ^ y for x, y in zip(a, b))

    @staticmethod
    def int_to_bytes32(value: int) -> bytes:
        """Serialize a non-negative integer as 32 big-endian bytes"""
        return value.to_bytes(32, 'big')

    @staticmethod
    def bytes32_to_int(data: bytes) -> int:
        return int.from_bytes(data, 'big')

    @staticmethod
    def to_wei(ether: Union[str, float, Decimal]) -> int:
        """
        Convert a native-coin amount to wei (10^-18).

        Args:
            ether: Amount in BNB/ETH, e.g. "0.01"

        Returns:
            Amount in wei

        Example:
            >>> Utils.to_wei("1.5")
            1500000000000000000
        """
        try:
            return int(Decimal(str(ether)) * WEI_PER_ETHER)
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {ether!r}") from e

    @staticmethod
    def from_wei(wei: int) -> Decimal:
        """
        Convert wei to a native-coin amount.

        Args:
            wei: Amount in wei

        Returns:
            Amount as Decimal (exact)
        """
        return Decimal(wei) / WEI_PER_ETHER

    @staticmethod
    def is_valid_address(address: str) -> bool:
        """
        Validate address format (0x followed by 40 hex characters).

        Checksum casing is not enforced.
        """
        pattern = r'^0x[0-9a-fA-F]{40}$'
        return bool(re.match(pattern, address))

    @staticmethod
    def format_balance(wei: int, decimals: int = 6) -> str:
        """
        Format a wei balance for display.

        Args:
            wei: Balance in wei
            decimals: Number of decimal places (default: 6)
        """
        return f"{Utils.from_wei(wei):.{decimals}f}"

    @staticmethod
    def format_address(address: str, length: int = 10) -> str:
        """
        Format address for display (shortened).

        Args:
            address: Full address
            length: Number of characters to show from start

        Returns:
            Shortened address with ellipsis and the last four characters
        """
        if len(address) <= length + 4:
            return address
        return f"{address[:length]}...{address[-4:]}"
