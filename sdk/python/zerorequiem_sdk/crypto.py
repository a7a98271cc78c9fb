"""
secp256k1 primitives for the stealth protocol
"""

import hashlib
import secrets
from typing import List, Optional, Tuple

from coincurve import PrivateKey, PublicKey
from eth_utils import keccak, to_checksum_address

from .constants import EC_GROUP_ORDER
from .errors import DecodingError, InvalidScalar

FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F

# Every x on secp256k1 has at most the two y values selected by these prefixes
PARITY_PREFIXES = (2, 3)


class CurveMath:
    """
    Stateless secp256k1 arithmetic via coincurve.

    Public keys travel as 65-byte uncompressed SEC1 encodings (04 || x || y),
    private keys as 32-byte big-endian scalars.
    """

    @staticmethod
    def is_valid_scalar(value: int) -> bool:
        return 0 < value < EC_GROUP_ORDER

    @staticmethod
    def check_scalar(value: int) -> int:
        """
        Return value unchanged if it lies in [1, n-1].

        Raises:
            InvalidScalar: Otherwise (never reduced mod n)
        """
        if not CurveMath.is_valid_scalar(value):
            raise InvalidScalar("Scalar outside [1, n-1]")
        return value

    @staticmethod
    def random_scalar() -> int:
        """
        Sample a scalar uniformly from [1, n-1] by rejection.

        Returns:
            Random scalar as int
        """
        while True:
            candidate = int.from_bytes(secrets.token_bytes(32), 'big')
            if CurveMath.is_valid_scalar(candidate):
                return candidate

    @staticmethod
    def public_key_of(private_key: bytes) -> bytes:
        """Uncompressed public key for a 32-byte private key"""
        try:
            return PrivateKey(private_key).public_key.format(compressed=False)
        except ValueError as e:
            raise InvalidScalar(f"Invalid private key: {e}") from e

    @staticmethod
    def scalar_multiply(public_key: bytes, scalar: int) -> bytes:
        """
        Multiply a curve point by a scalar.

        Args:
            public_key: Point in compressed or uncompressed form
            scalar: Scalar in [1, n-1]

        Returns:
            Resulting point, uncompressed
        """
        CurveMath.check_scalar(scalar)
        point = CurveMath._load(public_key)
        return point.multiply(scalar.to_bytes(32, 'big')).format(compressed=False)

    @staticmethod
    def ecdh(private_key: bytes, public_key: bytes) -> bytes:
        """
        Shared secret = SHA-256(compress(priv * pub)).

        Args:
            private_key: 32-byte scalar
            public_key: Counterparty point

        Returns:
            32-byte shared secret
        """
        scalar = CurveMath.check_scalar(int.from_bytes(private_key, 'big'))
        point = CurveMath._load(public_key)
        shared = point.multiply(scalar.to_bytes(32, 'big'))
        return hashlib.sha256(shared.format(compressed=True)).digest()

    @staticmethod
    def address_of(public_key: bytes) -> str:
        """
        EVM address of a public key.

        Low 20 bytes of keccak256 over the uncompressed key without its
        leading 0x04 byte, checksummed.
        """
        uncompressed = CurveMath._load(public_key).format(compressed=False)
        return to_checksum_address(keccak(uncompressed[1:])[-20:])

    @staticmethod
    def compress(public_key: bytes) -> Tuple[int, bytes]:
        """
        Compress a public key to its parity prefix and x-coordinate.

        Returns:
            Tuple of (prefix (2 or 3), 32-byte x)
        """
        compressed = CurveMath._load(public_key).format(compressed=True)
        return compressed[0], compressed[1:]

    @staticmethod
    def decompress(prefix: int, x: bytes) -> bytes:
        """
        Rebuild an uncompressed key from a parity prefix and x-coordinate.

        Raises:
            DecodingError: If prefix is not 2/3 or x is not on the curve
        """
        if prefix not in PARITY_PREFIXES:
            raise DecodingError(f"Invalid parity prefix: {prefix}")
        if len(x) != 32:
            raise DecodingError(f"x-coordinate must be 32 bytes, got {len(x)}")
        return CurveMath._load(bytes([prefix]) + x).format(compressed=False)

    @staticmethod
    def decompress_candidates(x: bytes) -> List[Tuple[int, Optional[bytes]]]:
        """
        Both parity candidates for an x-coordinate, in prefix order.

        A candidate that does not decode is returned as (prefix, None) so the
        caller walks an explicit list instead of catching per attempt.
        """
        candidates = []
        for prefix in PARITY_PREFIXES:
            try:
                candidates.append((prefix, CurveMath.decompress(prefix, x)))
            except DecodingError:
                candidates.append((prefix, None))

        points = [point for _, point in candidates if point is not None]
        if len(points) == 2:
            y_even = int.from_bytes(points[0][33:], 'big')
            y_odd = int.from_bytes(points[1][33:], 'big')
            if y_even + y_odd != FIELD_PRIME:
                raise DecodingError("Parity candidates are not negations of each other")
        return candidates

    @staticmethod
    def _load(public_key: bytes) -> PublicKey:
        try:
            return PublicKey(bytes(public_key))
        except (ValueError, TypeError) as e:
            raise DecodingError(f"Invalid curve point: {e}") from e
