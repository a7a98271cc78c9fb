"""
Key pair encoding tests
"""

import pytest

from zerorequiem_sdk.constants import EC_GROUP_ORDER
from zerorequiem_sdk.crypto import CurveMath
from zerorequiem_sdk.errors import DecodingError, InvalidScalar
from zerorequiem_sdk.keys import StealthKeyPair
from zerorequiem_sdk.utils import Utils


class TestStealthKeyPair:

    def test_from_private_key_hex(self):
        pair = StealthKeyPair("0x" + "00" * 31 + "01")
        assert pair.has_private_key
        assert pair.address == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
        assert len(pair.public_key) == 65

    def test_from_uncompressed_public_key(self):
        source = StealthKeyPair.generate()
        pair = StealthKeyPair(source.public_key)
        assert not pair.has_private_key
        assert pair.address == source.address

    def test_from_raw_public_key_without_prefix(self):
        source = StealthKeyPair.generate()
        pair = StealthKeyPair(source.public_key_hex[4:])
        assert pair.public_key == source.public_key

    def test_invalid_length(self):
        with pytest.raises(DecodingError):
            StealthKeyPair(b"\x01" * 33)

    def test_invalid_hex(self):
        with pytest.raises(DecodingError):
            StealthKeyPair("0xzz")

    def test_zero_private_key(self):
        with pytest.raises(InvalidScalar):
            StealthKeyPair(bytes(32))

    def test_private_key_equal_to_order(self):
        with pytest.raises(InvalidScalar):
            StealthKeyPair(Utils.int_to_bytes32(EC_GROUP_ORDER))

    def test_public_key_off_curve(self):
        with pytest.raises(DecodingError):
            StealthKeyPair(b"\x04" + b"\xff" * 64)

    def test_compressed_matches_curve(self):
        pair = StealthKeyPair.generate()
        point = pair.compressed()
        assert (point.prefix, point.x) == CurveMath.compress(pair.public_key)
        assert StealthKeyPair.from_compressed(point).public_key == pair.public_key

    def test_public_only_cannot_decrypt(self):
        pair = StealthKeyPair.generate()
        payload = pair.encrypt(CurveMath.random_scalar())
        with pytest.raises(ValueError):
            StealthKeyPair(pair.public_key).decrypt(payload)

    def test_encrypt_decrypt(self):
        recipient = StealthKeyPair.generate()
        r = CurveMath.random_scalar()
        payload = StealthKeyPair(recipient.public_key).encrypt(r)
        assert len(payload.ciphertext) == 32
        assert recipient.decrypt(payload) == r

    def test_wrong_key_does_not_decrypt(self):
        recipient = StealthKeyPair.generate()
        r = CurveMath.random_scalar()
        payload = recipient.encrypt(r)
        assert StealthKeyPair.generate().decrypt(payload) != r

    def test_equality(self):
        key = "0x" + "22" * 32
        assert StealthKeyPair(key) == StealthKeyPair(key)
        assert StealthKeyPair(key) != StealthKeyPair("0x" + "23" * 32)
