"""
Curve arithmetic tests
"""

import pytest
from eth_utils import keccak

from zerorequiem_sdk.constants import EC_GROUP_ORDER
from zerorequiem_sdk.crypto import CurveMath, PARITY_PREFIXES
from zerorequiem_sdk.errors import DecodingError, InvalidScalar
from zerorequiem_sdk.keys import StealthKeyPair
from zerorequiem_sdk.utils import Utils

GENERATOR_X = bytes.fromhex("79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798")
ONE = Utils.int_to_bytes32(1)


class TestGoldenVectors:
    """Known-good values for the primitives the verifier relies on"""

    def test_keccak_empty(self):
        assert keccak(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"

    def test_address_of_private_key_one(self):
        public_key = CurveMath.public_key_of(ONE)
        assert CurveMath.address_of(public_key) == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"

    def test_generator_compression(self):
        prefix, x = CurveMath.compress(CurveMath.public_key_of(ONE))
        assert prefix == 2
        assert x == GENERATOR_X


class TestScalars:

    def test_random_scalar_in_range(self):
        for _ in range(50):
            assert 0 < CurveMath.random_scalar() < EC_GROUP_ORDER

    def test_random_scalars_differ(self):
        assert CurveMath.random_scalar() != CurveMath.random_scalar()

    @pytest.mark.parametrize("value", [0, EC_GROUP_ORDER, EC_GROUP_ORDER + 1, -1])
    def test_check_scalar_rejects_out_of_range(self, value):
        with pytest.raises(InvalidScalar):
            CurveMath.check_scalar(value)

    def test_check_scalar_does_not_reduce(self):
        assert CurveMath.check_scalar(EC_GROUP_ORDER - 1) == EC_GROUP_ORDER - 1

    def test_scalar_multiply_rejects_zero(self):
        with pytest.raises(InvalidScalar):
            CurveMath.scalar_multiply(CurveMath.public_key_of(ONE), 0)


class TestPoints:

    def test_compress_decompress_round_trip(self):
        for _ in range(10):
            public_key = StealthKeyPair.generate().public_key
            assert CurveMath.decompress(*CurveMath.compress(public_key)) == public_key

    def test_decompress_rejects_bad_prefix(self):
        with pytest.raises(DecodingError):
            CurveMath.decompress(4, GENERATOR_X)

    def test_decompress_rejects_x_off_curve(self):
        with pytest.raises(DecodingError):
            CurveMath.decompress(2, b"\xff" * 32)

    def test_decompress_rejects_short_x(self):
        with pytest.raises(DecodingError):
            CurveMath.decompress(2, GENERATOR_X[:31])

    def test_candidates_cover_both_parities(self):
        candidates = CurveMath.decompress_candidates(GENERATOR_X)
        assert [prefix for prefix, _ in candidates] == list(PARITY_PREFIXES)
        assert candidates[0][1] == CurveMath.public_key_of(ONE)
        assert candidates[1][1] == CurveMath.public_key_of(Utils.int_to_bytes32(EC_GROUP_ORDER - 1))

    def test_candidates_for_invalid_x(self):
        assert CurveMath.decompress_candidates(b"\xff" * 32) == [(2, None), (3, None)]

    def test_scalar_multiply_by_one_is_identity(self):
        public_key = StealthKeyPair.generate().public_key
        assert CurveMath.scalar_multiply(public_key, 1) == public_key


class TestDerivations:

    def test_ecdh_is_symmetric(self):
        alice = StealthKeyPair.generate()
        bob = StealthKeyPair.generate()
        shared = CurveMath.ecdh(alice.private_key, bob.public_key)
        assert shared == CurveMath.ecdh(bob.private_key, alice.public_key)
        assert len(shared) == 32

    def test_private_and_public_multiplication_agree(self):
        for _ in range(10):
            pair = StealthKeyPair.generate()
            r = CurveMath.random_scalar()
            assert pair.mul_private_key(r).public_key == pair.mul_public_key(r).public_key
