"""
Relayer HTTP client tests
"""

import json

import pytest
import requests

from zerorequiem_sdk import RelayerClient
from zerorequiem_sdk.errors import ChainCommunicationError, RelayerError
from zerorequiem_sdk.models import UserOperation


def make_response(status_code, payload=None, reason="OK", body=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response._content = body if body is not None else json.dumps(payload or {}).encode()
    return response


class FakeSession:
    """Records requests and answers from a route table"""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        self.closed = False
        self.headers = {}

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append((method, url, timeout, kwargs))
        answer = self.routes[(method, url.split("relayer.test", 1)[1])]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self):
        self.closed = True


@pytest.fixture
def op():
    return UserOperation(
        sender="0x2222222222222222222222222222222222222222",
        nonce=1,
        init_code=b"",
        call_data=b"\x01",
        call_gas_limit=1,
        verification_gas_limit=2,
        pre_verification_gas=3,
        max_fee_per_gas=4,
        max_priority_fee_per_gas=5,
    )


def relayer_with(routes):
    relayer = RelayerClient("http://relayer.test/", timeout=7)
    relayer.session = FakeSession(routes)
    return relayer


class TestRelayerClient:

    def test_trailing_slash_is_stripped(self):
        assert RelayerClient("http://relayer.test/").base_url == "http://relayer.test"

    def test_sponsor(self, op):
        relayer = relayer_with({
            ("POST", "/api/sponsor"): make_response(200, {
                "paymasterAndData": "0x" + "ab" * 149,
                "validAfter": 100,
                "validUntil": "760",
            }),
        })
        grant = relayer.sponsor(op)

        assert grant.paymaster_and_data == b"\xab" * 149
        assert (grant.valid_after, grant.valid_until) == (100, 760)
        method, url, timeout, kwargs = relayer.session.requests[0]
        assert timeout == 7
        assert kwargs["json"] == {"userOp": op.to_dict()}

    def test_relay(self, op):
        relayer = relayer_with({
            ("POST", "/api/relay"): make_response(200, {"txHash": "0x" + "cd" * 32}),
        })
        assert relayer.relay(op) == "0x" + "cd" * 32

    def test_error_message_from_body(self, op):
        relayer = relayer_with({
            ("POST", "/api/sponsor"): make_response(
                400, {"error": "Stealth address has no funds in vault"}, reason="Bad Request"),
        })
        with pytest.raises(RelayerError) as exc:
            relayer.sponsor(op)
        assert str(exc.value) == "Stealth address has no funds in vault"
        assert exc.value.status_code == 400

    def test_error_without_json_body(self, op):
        relayer = relayer_with({
            ("POST", "/api/relay"): make_response(502, reason="Bad Gateway", body=b"<html>"),
        })
        with pytest.raises(RelayerError) as exc:
            relayer.relay(op)
        assert str(exc.value) == "Bad Gateway"
        assert exc.value.status_code == 502

    def test_connection_error(self, op):
        relayer = relayer_with({
            ("POST", "/api/relay"): requests.ConnectionError("refused"),
        })
        with pytest.raises(ChainCommunicationError):
            relayer.relay(op)

    def test_get_announcements(self):
        relayer = relayer_with({
            ("GET", "/api/scan"): make_response(200, {"announcements": [{
                "receiver": "0x3333333333333333333333333333333333333333",
                "amount": "1000000000000000000",
                "token": "0x0000000000000000000000000000000000000000",
                "pkx": "0x" + "11" * 32,
                "ciphertext": "0x" + "22" * 32,
                "blockNumber": 42,
                "txHash": "0x" + "33" * 32,
            }]}),
        })
        announcements = relayer.get_announcements(from_block=40)

        assert len(announcements) == 1
        assert announcements[0].amount == 10**18
        assert announcements[0].pkx == b"\x11" * 32
        assert announcements[0].block_number == 42
        assert relayer.session.requests[0][3]["params"] == {"from": 40}

    def test_get_balance(self):
        address = "0x3333333333333333333333333333333333333333"
        relayer = relayer_with({
            ("GET", f"/api/balance/{address}"): make_response(200, {"balance": "250"}),
        })
        assert relayer.get_balance(address) == 250

    def test_get_config(self):
        deployment = {
            "chainId": 97,
            "entryPoint": "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789",
            "paymaster": "0xe0fdDfa9f06c9E35eCDec67f2c7AFCB3Af0E439C",
        }
        relayer = relayer_with({("GET", "/api/config"): make_response(200, deployment)})
        assert relayer.get_config() == deployment
        assert relayer.session.requests[0][:2] == ("GET", "http://relayer.test/api/config")

    def test_is_online(self):
        assert relayer_with({("GET", "/health"): make_response(200, {"status": "ok"})}).is_online()
        assert not relayer_with({("GET", "/health"): make_response(503, reason="Down")}).is_online()
        assert not relayer_with({("GET", "/health"): requests.Timeout("slow")}).is_online()

    def test_context_manager_closes_session(self):
        with relayer_with({}) as relayer:
            pass
        assert relayer.session.closed
