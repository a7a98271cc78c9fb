"""
Sponsored withdrawal UserOperations: building, hashing and signing
"""

import logging
from typing import Sequence, Tuple, Union

from eth_abi import decode, encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from .config import ZeroRequiemConfig
from .constants import (
    ACCOUNT_DEPLOYMENT_GAS,
    DEFAULT_CALL_GAS_LIMIT,
    DEFAULT_MAX_FEE_PER_GAS,
    DEFAULT_MAX_PRIORITY_FEE_PER_GAS,
    DEFAULT_PRE_VERIFICATION_GAS,
    DEFAULT_VERIFICATION_GAS_LIMIT,
)
from .errors import ChainCommunicationError, DecodingError
from .models import UserOperation
from .utils import Utils

logger = logging.getLogger(__name__)

# Field order and widths checked by the entry point; changing any of these
# yields signatures the verifier rejects.
USER_OP_PACK_TYPES = (
    'address',   # sender
    'uint256',   # nonce
    'bytes32',   # keccak(initCode)
    'bytes32',   # keccak(callData)
    'uint256',   # callGasLimit
    'uint256',   # verificationGasLimit
    'uint256',   # preVerificationGas
    'uint256',   # maxFeePerGas
    'uint256',   # maxPriorityFeePerGas
    'bytes32',   # keccak(paymasterAndData)
)
USER_OP_HASH_TYPES = ('bytes32', 'address', 'uint256')
PAYMASTER_TIME_TYPES = ('uint48', 'uint48')

ADDRESS_LENGTH = 20
PAYMASTER_TIME_LENGTH = 64
SIGNATURE_LENGTH = 65


def encode_call(signature: str, types: Sequence[str], values: Sequence) -> bytes:
    """
    ABI-encode a contract call.

    Args:
        signature: Canonical function signature, e.g. "withdraw(address,uint256)"
        types: Argument types
        values: Argument values
    """
    return function_signature_to_4byte_selector(signature) + encode(list(types), list(values))


def pack_user_op(op: UserOperation) -> bytes:
    """ABI encoding of the signed fields, dynamic fields replaced by their keccak"""
    return encode(list(USER_OP_PACK_TYPES), [
        to_checksum_address(op.sender),
        op.nonce,
        keccak(op.init_code),
        keccak(op.call_data),
        op.call_gas_limit,
        op.verification_gas_limit,
        op.pre_verification_gas,
        op.max_fee_per_gas,
        op.max_priority_fee_per_gas,
        keccak(op.paymaster_and_data),
    ])


def user_op_hash(op: UserOperation, entry_point: str, chain_id: int) -> bytes:
    """
    Canonical userOpHash.

    keccak(abi.encode(keccak(pack(op)), entryPoint, chainId))
    """
    return keccak(encode(list(USER_OP_HASH_TYPES), [
        keccak(pack_user_op(op)),
        to_checksum_address(entry_point),
        chain_id,
    ]))


def sign_hash(digest: bytes, private_key: Union[str, bytes]) -> bytes:
    """
    EIP-191 personal-message signature over a 32-byte digest.

    Returns:
        65-byte r || s || v signature
    """
    signed = Account.sign_message(encode_defunct(primitive=digest), private_key=private_key)
    return bytes(signed.signature)


def encode_paymaster_and_data(paymaster: str, valid_until: int, valid_after: int,
                              signature: bytes) -> bytes:
    """paymaster (20) || abi.encode(uint48 validUntil, uint48 validAfter) (64) || signature"""
    return (
        Utils.to_bytes(to_checksum_address(paymaster))
        + encode(list(PAYMASTER_TIME_TYPES), [valid_until, valid_after])
        + bytes(signature)
    )


def decode_paymaster_and_data(data: bytes) -> Tuple[str, int, int, bytes]:
    """
    Split paymasterAndData into its parts.

    Returns:
        Tuple of (paymaster address, valid_until, valid_after, signature)
    """
    header = ADDRESS_LENGTH + PAYMASTER_TIME_LENGTH
    if len(data) < header:
        raise DecodingError(f"paymasterAndData too short: {len(data)} bytes")
    paymaster = to_checksum_address(data[:ADDRESS_LENGTH])
    valid_until, valid_after = decode(list(PAYMASTER_TIME_TYPES), data[ADDRESS_LENGTH:header])
    return paymaster, valid_until, valid_after, bytes(data[header:])


class UserOpBuilder:
    """
    Builds and signs UserOperations that withdraw from the vault through a
    stealth smart account.

    Example:
        >>> builder = UserOpBuilder(config, chain)
        >>> op = builder.build_withdrawal(account, owner, recipient, amount)
        >>> op.signature = builder.sign(op, stealth_private_key)
    """

    def __init__(self, config: ZeroRequiemConfig, chain):
        """
        Args:
            config: SDK configuration
            chain: Chain collaborator (see ChainClient)
        """
        self.config = config
        self.chain = chain

    def build_withdrawal(self, stealth_account: str, stealth_owner: str, recipient: str,
                         amount: int, salt: int = 0) -> UserOperation:
        """
        Build an unsponsored, unsigned withdrawal operation.

        If the stealth account is not deployed yet, initCode deploys it in
        the same operation.

        Args:
            stealth_account: Smart-account address (operation sender)
            stealth_owner: Stealth EOA owning the account
            recipient: Address receiving the withdrawn funds
            amount: Amount in wei
            salt: Account factory salt

        Returns:
            UserOperation with empty paymasterAndData and signature
        """
        deployed = len(self.chain.get_code(stealth_account)) > 0

        init_code = b''
        if not deployed:
            init_code = (
                Utils.to_bytes(to_checksum_address(self.config.factory_address))
                + self.chain.create_account_calldata(stealth_owner, salt)
            )

        withdraw_call = encode_call('withdraw(address,uint256)', ['address', 'uint256'],
                                    [to_checksum_address(recipient), amount])
        call_data = encode_call('execute(address,uint256,bytes)', ['address', 'uint256', 'bytes'],
                                [to_checksum_address(self.config.vault_address), 0, withdraw_call])

        try:
            nonce = self.chain.get_nonce(stealth_account)
        except ChainCommunicationError:
            if deployed:
                raise
            nonce = 0

        fees = self.chain.fee_data()
        max_fee = fees.max_fee_per_gas or fees.gas_price or DEFAULT_MAX_FEE_PER_GAS
        priority_fee = fees.max_priority_fee_per_gas or DEFAULT_MAX_PRIORITY_FEE_PER_GAS

        verification_gas = DEFAULT_VERIFICATION_GAS_LIMIT
        if not deployed:
            verification_gas += ACCOUNT_DEPLOYMENT_GAS

        logger.debug(f"Built withdrawal for {stealth_account} (deployed={deployed}, nonce={nonce})")
        return UserOperation(
            sender=to_checksum_address(stealth_account),
            nonce=nonce,
            init_code=init_code,
            call_data=call_data,
            call_gas_limit=DEFAULT_CALL_GAS_LIMIT,
            verification_gas_limit=verification_gas,
            pre_verification_gas=DEFAULT_PRE_VERIFICATION_GAS,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
        )

    def hash(self, op: UserOperation) -> bytes:
        """userOpHash for the configured entry point and chain"""
        return user_op_hash(op, self.config.entry_point_address, self.config.chain_id)

    def sign(self, op: UserOperation, stealth_private_key: Union[str, bytes]) -> bytes:
        """
        Sign an operation with the stealth key.

        Must run after sponsorship: paymasterAndData is part of the hash.

        Returns:
            65-byte signature
        """
        return sign_hash(self.hash(op), stealth_private_key)
