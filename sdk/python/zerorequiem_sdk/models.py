"""
Data models for ZeroRequiem SDK
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from .utils import Utils


@dataclass(frozen=True)
class CompressedPoint:
    """Parity prefix (2 or 3) and 32-byte x-coordinate"""
    prefix: int
    x: bytes

    @property
    def x_hex(self) -> str:
        return Utils.to_hex(self.x)


@dataclass(frozen=True)
class StealthMetaAddress:
    """A recipient's published spending and viewing keys"""
    spending: CompressedPoint
    viewing: CompressedPoint

    def to_registry_args(self) -> Tuple[int, int, int, int]:
        """Arguments for registry.setStealthKeys"""
        return (
            self.spending.prefix,
            Utils.bytes32_to_int(self.spending.x),
            self.viewing.prefix,
            Utils.bytes32_to_int(self.viewing.x),
        )

    @classmethod
    def from_registry(cls, values: Sequence[int]) -> Optional['StealthMetaAddress']:
        """
        Build from the four uint256 values stored by the registry.

        Returns None when the address has not registered keys.
        """
        sp_prefix, sp_x, vw_prefix, vw_x = (int(v) for v in values)
        if sp_prefix == 0:
            return None
        return cls(
            spending=CompressedPoint(sp_prefix, Utils.int_to_bytes32(sp_x)),
            viewing=CompressedPoint(vw_prefix, Utils.int_to_bytes32(vw_x)),
        )


@dataclass(frozen=True)
class EncryptedPayload:
    """Ephemeral public key and the masked random number"""
    ephemeral_public_key: bytes
    ciphertext: bytes


@dataclass(frozen=True)
class PreparedSend:
    """Everything a sender needs to submit a stealth deposit"""
    stealth_address: str
    stealth_public_key: bytes
    ephemeral_public_key_x: bytes
    ciphertext: bytes
    random_number: int


@dataclass
class Announcement:
    """Announcement event emitted by the vault on every deposit"""
    receiver: str
    amount: int
    token: str
    pkx: bytes
    ciphertext: bytes
    block_number: int = 0
    tx_hash: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Announcement':
        """Parse the relayer's /api/scan JSON shape"""
        return cls(
            receiver=data['receiver'],
            amount=int(data['amount']),
            token=data['token'],
            pkx=Utils.to_bytes(data['pkx']),
            ciphertext=Utils.to_bytes(data['ciphertext']),
            block_number=int(data.get('blockNumber', 0)),
            tx_hash=data.get('txHash', ''),
        )


@dataclass
class ScannedPayment(Announcement):
    """Announcement addressed to the scanning recipient"""
    random_number: int = 0
    stealth_private_key: bytes = b''


@dataclass
class FeeData:
    """Fee suggestions read from the chain"""
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


@dataclass
class UserOperation:
    """ERC-4337 v0.6 UserOperation"""
    sender: str
    nonce: int
    init_code: bytes
    call_data: bytes
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    paymaster_and_data: bytes = b''
    signature: bytes = b''

    def as_tuple(self) -> Tuple:
        """Field order of the on-chain struct"""
        return (
            self.sender,
            self.nonce,
            self.init_code,
            self.call_data,
            self.call_gas_limit,
            self.verification_gas_limit,
            self.pre_verification_gas,
            self.max_fee_per_gas,
            self.max_priority_fee_per_gas,
            self.paymaster_and_data,
            self.signature,
        )

    def to_dict(self) -> Dict[str, str]:
        """JSON shape used by the relayer API (decimal strings, 0x hex)"""
        return {
            'sender': self.sender,
            'nonce': str(self.nonce),
            'initCode': Utils.to_hex(self.init_code),
            'callData': Utils.to_hex(self.call_data),
            'callGasLimit': str(self.call_gas_limit),
            'verificationGasLimit': str(self.verification_gas_limit),
            'preVerificationGas': str(self.pre_verification_gas),
            'maxFeePerGas': str(self.max_fee_per_gas),
            'maxPriorityFeePerGas': str(self.max_priority_fee_per_gas),
            'paymasterAndData': Utils.to_hex(self.paymaster_and_data),
            'signature': Utils.to_hex(self.signature),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserOperation':
        return cls(
            sender=data['sender'],
            nonce=int(data['nonce']),
            init_code=Utils.to_bytes(data['initCode']),
            call_data=Utils.to_bytes(data['callData']),
            call_gas_limit=int(data['callGasLimit']),
            verification_gas_limit=int(data['verificationGasLimit']),
            pre_verification_gas=int(data['preVerificationGas']),
            max_fee_per_gas=int(data['maxFeePerGas']),
            max_priority_fee_per_gas=int(data['maxPriorityFeePerGas']),
            paymaster_and_data=Utils.to_bytes(data.get('paymasterAndData', '0x')),
            signature=Utils.to_bytes(data.get('signature', '0x')),
        )


@dataclass(frozen=True)
class SponsorshipGrant:
    """Time-boxed paymaster authorization for one operation"""
    paymaster_and_data: bytes
    valid_after: int
    valid_until: int


@dataclass
class RelayerStatus:
    """Relayer availability and deployment overview"""
    online: bool
    relayer_url: str
    paymaster_deposit: Optional[int] = None
    contracts: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SendResult:
    """Outcome of a stealth deposit"""
    tx_hash: str
    stealth_address: str
    stealth_account: str
