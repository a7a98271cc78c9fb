"""
Stealth key pairs and their encodings
"""

from typing import Optional, Union

from .constants import EC_GROUP_ORDER
from .crypto import CurveMath
from .errors import DecodingError, InvalidScalar
from .models import CompressedPoint, EncryptedPayload
from .utils import Utils


class StealthKeyPair:
    """
    A secp256k1 key pair, or only the public half of one.

    Accepts a 32-byte private key, a 64-byte raw public key or a 65-byte
    uncompressed public key, as bytes or hex.

    Example:
        >>> pair = StealthKeyPair("0x" + "11" * 32)
        >>> pair.address
        '0x...'
    """

    def __init__(self, key: Union[str, bytes]):
        raw = Utils.to_bytes(key)
        self.private_key: Optional[bytes] = None

        if len(raw) == 32:
            scalar = int.from_bytes(raw, 'big')
            if not CurveMath.is_valid_scalar(scalar):
                raise InvalidScalar("Private key outside [1, n-1]")
            self.private_key = raw
            self.public_key = CurveMath.public_key_of(raw)
        elif len(raw) in (64, 65):
            if len(raw) == 64:
                raw = b'\x04' + raw
            if raw[0] != 4:
                raise DecodingError(f"Invalid public key prefix: {raw[0]:#04x}")
            # Round-trip through the curve to reject points that are not on it
            self.public_key = CurveMath.decompress(*CurveMath.compress(raw))
        else:
            raise DecodingError(f"Invalid key length: {len(raw)}")

    @classmethod
    def from_compressed(cls, point: CompressedPoint) -> 'StealthKeyPair':
        return cls(CurveMath.decompress(point.prefix, point.x))

    @classmethod
    def generate(cls) -> 'StealthKeyPair':
        """Fresh random key pair"""
        return cls(Utils.int_to_bytes32(CurveMath.random_scalar()))

    @property
    def has_private_key(self) -> bool:
        return self.private_key is not None

    @property
    def private_scalar(self) -> int:
        if self.private_key is None:
            raise ValueError("Key pair has no private key")
        return int.from_bytes(self.private_key, 'big')

    @property
    def address(self) -> str:
        return CurveMath.address_of(self.public_key)

    @property
    def private_key_hex(self) -> Optional[str]:
        return Utils.to_hex(self.private_key) if self.private_key else None

    @property
    def public_key_hex(self) -> str:
        return Utils.to_hex(self.public_key)

    def compressed(self) -> CompressedPoint:
        """On-chain compact form: parity prefix and x-coordinate"""
        prefix, x = CurveMath.compress(self.public_key)
        return CompressedPoint(prefix, x)

    def mul_public_key(self, scalar: int) -> 'StealthKeyPair':
        """
        Public-only key pair for public_key * scalar.

        Used for stealth address derivation: stealthPub = spendingPub * r
        """
        return StealthKeyPair(CurveMath.scalar_multiply(self.public_key, scalar))

    def mul_private_key(self, scalar: int) -> 'StealthKeyPair':
        """
        Key pair for (private_key * scalar) mod n.

        Used for stealth private key derivation: stealthPriv = spendingPriv * r mod n
        """
        CurveMath.check_scalar(scalar)
        product = (self.private_scalar * scalar) % EC_GROUP_ORDER
        return StealthKeyPair(Utils.int_to_bytes32(product))

    def encrypt(self, random_number: int) -> EncryptedPayload:
        """
        Mask a random number for the holder of this public key.

        A fresh ephemeral key pair is generated; the 32-byte big-endian
        random number is XORed with ECDH(ephemeral, self).
        """
        CurveMath.check_scalar(random_number)
        ephemeral = StealthKeyPair.generate()
        shared = CurveMath.ecdh(ephemeral.private_key, self.public_key)
        return EncryptedPayload(
            ephemeral_public_key=ephemeral.public_key,
            ciphertext=Utils.xor_bytes(Utils.int_to_bytes32(random_number), shared),
        )

    def decrypt(self, payload: EncryptedPayload) -> int:
        """
        Unmask the random number of a payload.

        The result is NOT range-checked; callers decide how to treat
        values outside [1, n-1].
        """
        if self.private_key is None:
            raise ValueError("Cannot decrypt without private key")
        shared = CurveMath.ecdh(self.private_key, payload.ephemeral_public_key)
        return Utils.bytes32_to_int(Utils.xor_bytes(payload.ciphertext, shared))

    def __eq__(self, other):
        if not isinstance(other, StealthKeyPair):
            return NotImplemented
        return self.private_key == other.private_key and self.public_key == other.public_key

    def __hash__(self):
        return hash((self.private_key, self.public_key))

    def __repr__(self):
        return f"StealthKeyPair(address={self.address}, private={self.has_private_key})"
