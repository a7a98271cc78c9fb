"""
ZeroRequiem SDK test fixtures
"""

import time
from dataclasses import replace

import pytest
from eth_abi import decode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address

from zerorequiem_sdk import ZeroRequiemConfig
from zerorequiem_sdk.errors import (
    ChainCommunicationError,
    OperationReverted,
    SponsorshipExpired,
    SponsorshipRejected,
)
from zerorequiem_sdk.models import Announcement, FeeData
from zerorequiem_sdk.userop import encode_call

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

WALLET_KEY = "0x" + "a1" * 32
SENDER_KEY = "0x" + "b2" * 32
SPONSOR_KEY = "0x" + "c3" * 32
RELAY_KEY = "0x" + "d4" * 32


def _word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _address_word(address: str) -> bytes:
    return bytes(12) + bytes.fromhex(address[2:])


def reference_user_op_hash(op, entry_point: str, chain_id: int) -> bytes:
    """Word-by-word userOpHash, written independently of the SDK encoder"""
    packed = b"".join([
        _address_word(op.sender),
        _word(op.nonce),
        keccak(op.init_code),
        keccak(op.call_data),
        _word(op.call_gas_limit),
        _word(op.verification_gas_limit),
        _word(op.pre_verification_gas),
        _word(op.max_fee_per_gas),
        _word(op.max_priority_fee_per_gas),
        keccak(op.paymaster_and_data),
    ])
    return keccak(keccak(packed) + _address_word(entry_point) + _word(chain_id))


def recover(digest: bytes, signature: bytes) -> str:
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


class FakeChain:
    """
    In-memory registry, vault, factory and entry point.

    handle_ops verifies signatures, the paymaster grant and its window the
    way the on-chain verifier does, then executes the vault withdrawal.
    """

    def __init__(self, config: ZeroRequiemConfig, sponsor_address: str):
        self.config = config
        self.sponsor_address = sponsor_address
        self.registry = {}
        self.balances = {}
        self.native = {}
        self.logs = []
        self.code = {}
        self.owners = {}
        self.nonces = {}
        self.block_number = 100
        self.submitted = []
        self.fees = FeeData(gas_price=3_000_000_000)
        self.calls = []

    def _tx(self) -> str:
        self.block_number += 1
        return "0x" + keccak(_word(self.block_number)).hex()

    def lookup_meta_address(self, address):
        return self.registry.get(address.lower())

    def publish_meta_address(self, meta, private_key):
        self.registry[Account.from_key(private_key).address.lower()] = meta
        return self._tx()

    def deposit(self, stealth_account, pkx, ciphertext, value, private_key):
        key = stealth_account.lower()
        self.balances[key] = self.balances.get(key, 0) + value
        tx_hash = self._tx()
        self.logs.append(Announcement(
            receiver=to_checksum_address(stealth_account),
            amount=value,
            token=ZERO_ADDRESS,
            pkx=pkx,
            ciphertext=ciphertext,
            block_number=self.block_number,
            tx_hash=tx_hash,
        ))
        return tx_hash

    def vault_balance(self, address):
        self.calls.append(("vault_balance", address))
        return self.balances.get(address.lower(), 0)

    def announcements(self, from_block=0, to_block="latest"):
        last = self.block_number if to_block == "latest" else to_block
        return [a for a in self.logs if from_block <= a.block_number <= last]

    def account_address(self, owner, salt=0):
        self.calls.append(("account_address", owner))
        return self._counterfactual(owner, salt)

    def account_addresses(self, owners, salt=0):
        self.calls.append(("account_addresses", list(owners)))
        return [self._counterfactual(owner, salt) for owner in owners]

    def _counterfactual(self, owner, salt):
        return to_checksum_address(keccak(b"account" + bytes.fromhex(owner[2:]) + _word(salt))[-20:])

    def factory_calls(self):
        return [call for call in self.calls if call[0].startswith("account_address")]

    def create_account_calldata(self, owner, salt=0):
        return encode_call("createAccount(address,uint256)", ["address", "uint256"],
                           [to_checksum_address(owner), salt])

    def get_nonce(self, account):
        if account.lower() not in self.code:
            raise ChainCommunicationError("entryPoint.getNonce failed: account not deployed")
        return self.nonces.get(account.lower(), 0)

    def get_code(self, address):
        return self.code.get(address.lower(), b"")

    def fee_data(self):
        return self.fees

    def paymaster_deposit(self, paymaster=None):
        return 5 * 10**17

    def handle_ops(self, ops, private_key):
        beneficiary = Account.from_key(private_key).address
        for op in ops:
            self._validate_and_execute(op)
        self.submitted.append((list(ops), beneficiary))
        return self._tx()

    def _validate_and_execute(self, op):
        sender = op.sender.lower()
        if op.init_code:
            owner, salt = decode(["address", "uint256"], op.init_code[24:])
            if self.account_address(owner, salt).lower() != sender:
                raise OperationReverted("AA14 initCode must return sender")
            self.code[sender] = b"\x60\x80"
            self.owners[sender] = owner
        elif sender not in self.code:
            raise OperationReverted("AA20 account not deployed")

        if op.nonce != self.nonces.get(sender, 0):
            raise OperationReverted("AA25 invalid account nonce")

        digest = reference_user_op_hash(op, self.config.entry_point_address, self.config.chain_id)
        if recover(digest, op.signature).lower() != self.owners[sender].lower():
            raise OperationReverted("AA24 signature error")

        paymaster = to_checksum_address(op.paymaster_and_data[:20])
        valid_until, valid_after = decode(["uint48", "uint48"], op.paymaster_and_data[20:84])
        placeholder = op.paymaster_and_data[:84] + bytes(65)
        sponsor_digest = reference_user_op_hash(
            replace(op, paymaster_and_data=placeholder),
            self.config.entry_point_address,
            self.config.chain_id,
        )
        if paymaster.lower() != self.config.paymaster_address.lower():
            raise SponsorshipRejected("AA33 reverted: unknown paymaster")
        if recover(sponsor_digest, op.paymaster_and_data[84:]).lower() != self.sponsor_address.lower():
            raise SponsorshipRejected("AA34 signature error")
        now = int(time.time())
        if not valid_after <= now <= valid_until:
            raise SponsorshipExpired("AA32 paymaster expired or not due")

        dest, _, func = decode(["address", "uint256", "bytes"], op.call_data[4:])
        assert dest.lower() == self.config.vault_address.lower()
        recipient, amount = decode(["address", "uint256"], func[4:])
        if self.balances.get(sender, 0) < amount:
            raise OperationReverted("vault: insufficient balance")
        self.balances[sender] -= amount
        self.native[recipient.lower()] = self.native.get(recipient.lower(), 0) + amount
        self.nonces[sender] = op.nonce + 1


@pytest.fixture
def config() -> ZeroRequiemConfig:
    """Test configuration on chain 97 with the default deployment"""
    return ZeroRequiemConfig(relayer_url="http://relayer.test", timeout=5)


@pytest.fixture
def sponsor_address() -> str:
    return Account.from_key(SPONSOR_KEY).address


@pytest.fixture
def chain(config, sponsor_address) -> FakeChain:
    return FakeChain(config, sponsor_address)


@pytest.fixture
def recipient_keys():
    """Stealth keys of the wallet behind WALLET_KEY on chain 97"""
    from zerorequiem_sdk import StealthProtocol
    return StealthProtocol.derive_keys_from_account(WALLET_KEY, 97)
