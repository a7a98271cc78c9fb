"""
On-chain collaborators: registry, vault, account factory, entry point, paymaster
"""

import logging
from contextlib import contextmanager
from typing import List, Optional, Sequence, Union

from eth_abi import decode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from .config import ZeroRequiemConfig
from .constants import (
    ENTRY_POINT_ABI,
    FACTORY_ABI,
    HANDLE_OPS_GAS_LIMIT,
    PAYMASTER_ABI,
    REGISTRY_ABI,
    VAULT_ABI,
)
from .errors import ChainCommunicationError, OperationReverted, classify_revert
from .models import Announcement, FeeData, StealthMetaAddress, UserOperation
from .userop import encode_call

logger = logging.getLogger(__name__)

# EntryPoint v0.6: error FailedOp(uint256 opIndex, string reason)
FAILED_OP_SELECTOR = function_signature_to_4byte_selector('FailedOp(uint256,string)')

# Many public RPC nodes cap eth_getLogs ranges
LOG_BLOCK_RANGE = 2000

ACCOUNT_BATCH_SIZE = 100

DEFAULT_PRIORITY_FEE = 1_000_000_000


def _revert_reason(error: ContractLogicError) -> str:
    data = getattr(error, 'data', None)
    if isinstance(data, str) and data.startswith('0x'):
        try:
            raw = bytes.fromhex(data[2:])
            if raw[:4] == FAILED_OP_SELECTOR:
                _, reason = decode(['uint256', 'string'], raw[4:])
                return reason
        except (ValueError, AbiDecodingError):
            logger.debug(f"Undecodable revert data: {data}")
    return getattr(error, 'message', None) or str(error)


@contextmanager
def _rpc(action: str):
    try:
        yield
    except ContractLogicError as e:
        reason = _revert_reason(e)
        logger.warning(f"{action} reverted: {reason}")
        raise classify_revert(reason) from e
    except (Web3Exception, RequestException, ValueError) as e:
        raise ChainCommunicationError(f"{action} failed: {e}") from e


class ChainClient:
    """
    web3 access to the ZeroRequiem contracts.

    Example:
        >>> chain = ChainClient(ZeroRequiemConfig())
        >>> chain.vault_balance("0x...")
        0
    """

    def __init__(self, config: ZeroRequiemConfig, w3: Optional[Web3] = None):
        """
        Args:
            config: SDK configuration
            w3: Pre-built Web3 instance (default: HTTP provider on config.rpc_url)
        """
        self.config = config
        self.w3 = w3 or Web3(Web3.HTTPProvider(
            config.rpc_url, request_kwargs={'timeout': config.timeout}
        ))
        self.registry = self._contract(config.registry_address, REGISTRY_ABI)
        self.vault = self._contract(config.vault_address, VAULT_ABI)
        self.factory = self._contract(config.factory_address, FACTORY_ABI)
        self.entry_point = self._contract(config.entry_point_address, ENTRY_POINT_ABI)
        self.paymaster = self._contract(config.paymaster_address, PAYMASTER_ABI)

    def _contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # Registry

    def lookup_meta_address(self, address: str) -> Optional[StealthMetaAddress]:
        """
        Registered stealth keys of an address.

        Returns:
            StealthMetaAddress, or None if the address never registered
        """
        with _rpc('registry.stealthKeys'):
            values = self.registry.functions.stealthKeys(
                Web3.to_checksum_address(address)
            ).call()
        return StealthMetaAddress.from_registry(values)

    def publish_meta_address(self, meta: StealthMetaAddress, private_key: Union[str, bytes]) -> str:
        """Register stealth keys for the signer's address. Returns tx hash."""
        fn = self.registry.functions.setStealthKeys(*meta.to_registry_args())
        return self._transact('registry.setStealthKeys', fn, private_key)

    # Vault

    def deposit(self, stealth_account: str, pkx: bytes, ciphertext: bytes, value: int,
                private_key: Union[str, bytes]) -> str:
        """Deposit value for a stealth account and emit its announcement"""
        fn = self.vault.functions.sendToStealth(
            Web3.to_checksum_address(stealth_account), pkx, ciphertext
        )
        return self._transact('vault.sendToStealth', fn, private_key, value=value)

    def vault_balance(self, address: str) -> int:
        with _rpc('vault.stealthBalances'):
            return self.vault.functions.stealthBalances(
                Web3.to_checksum_address(address)
            ).call()

    def announcements(self, from_block: int = 0,
                      to_block: Union[int, str] = 'latest') -> List[Announcement]:
        """
        Announcement events in [from_block, to_block], oldest first.

        Queried in ranges of LOG_BLOCK_RANGE blocks.
        """
        with _rpc('vault.Announcement logs'):
            last = self.w3.eth.block_number if to_block == 'latest' else int(to_block)
            result = []
            start = from_block
            while start <= last:
                end = min(start + LOG_BLOCK_RANGE - 1, last)
                logs = self.vault.events.Announcement.get_logs(from_block=start, to_block=end)
                for log in logs:
                    args = log['args']
                    result.append(Announcement(
                        receiver=args['receiver'],
                        amount=int(args['amount']),
                        token=args['token'],
                        pkx=bytes(args['pkx']),
                        ciphertext=bytes(args['ciphertext']),
                        block_number=log['blockNumber'],
                        tx_hash=Web3.to_hex(log['transactionHash']),
                    ))
                start = end + 1
        logger.debug(f"Fetched {len(result)} announcements from block {from_block}")
        return result

    # Account factory

    def account_address(self, owner: str, salt: int = 0) -> str:
        """Counterfactual smart-account address for an owner"""
        with _rpc('factory.getAddress'):
            return self.factory.functions.getAddress(
                Web3.to_checksum_address(owner), salt
            ).call()

    def account_addresses(self, owners: Sequence[str], salt: int = 0) -> List[str]:
        """
        Smart-account addresses for many owners, in input order.

        Sent as JSON-RPC batches of ACCOUNT_BATCH_SIZE calls.
        """
        result = []
        with _rpc('factory.getAddress batch'):
            for start in range(0, len(owners), ACCOUNT_BATCH_SIZE):
                with self.w3.batch_requests() as batch:
                    for owner in owners[start:start + ACCOUNT_BATCH_SIZE]:
                        batch.add(self.factory.functions.getAddress(
                            Web3.to_checksum_address(owner), salt
                        ))
                    result.extend(batch.execute())
        return result

    def create_account_calldata(self, owner: str, salt: int = 0) -> bytes:
        return encode_call('createAccount(address,uint256)', ['address', 'uint256'],
                           [Web3.to_checksum_address(owner), salt])

    # Entry point

    def get_nonce(self, account: str) -> int:
        with _rpc('entryPoint.getNonce'):
            return self.entry_point.functions.getNonce(
                Web3.to_checksum_address(account), 0
            ).call()

    def entry_point_user_op_hash(self, op: UserOperation) -> bytes:
        """The entry point's own userOpHash, for cross-checking"""
        with _rpc('entryPoint.getUserOpHash'):
            return bytes(self.entry_point.functions.getUserOpHash(op.as_tuple()).call())

    def handle_ops(self, ops: Sequence[UserOperation], private_key: Union[str, bytes]) -> str:
        """
        Submit operations, naming the submitting account as beneficiary.

        Returns:
            Transaction hash
        """
        beneficiary = Account.from_key(private_key).address
        fn = self.entry_point.functions.handleOps([op.as_tuple() for op in ops], beneficiary)
        return self._transact('entryPoint.handleOps', fn, private_key, gas=HANDLE_OPS_GAS_LIMIT)

    def paymaster_deposit(self, paymaster: Optional[str] = None) -> int:
        """Paymaster's gas deposit held by the entry point"""
        with _rpc('entryPoint.balanceOf'):
            return self.entry_point.functions.balanceOf(
                Web3.to_checksum_address(paymaster or self.config.paymaster_address)
            ).call()

    # Paymaster

    def paymaster_hash(self, op: UserOperation, valid_until: int, valid_after: int) -> bytes:
        """Hash the paymaster contract expects its signer to sign"""
        with _rpc('paymaster.getHash'):
            return bytes(self.paymaster.functions.getHash(
                op.as_tuple(), valid_until, valid_after
            ).call())

    # Generic reads

    def get_code(self, address: str) -> bytes:
        with _rpc('eth_getCode'):
            return bytes(self.w3.eth.get_code(Web3.to_checksum_address(address)))

    def fee_data(self) -> FeeData:
        """
        Current fee suggestions.

        EIP-1559 chains get maxFee = 2 * baseFee + priority; legacy chains
        only report a gas price.
        """
        with _rpc('fee data'):
            gas_price = self.w3.eth.gas_price
            base_fee = self.w3.eth.get_block('latest').get('baseFeePerGas')
        if base_fee is None:
            return FeeData(gas_price=gas_price)
        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=base_fee * 2 + DEFAULT_PRIORITY_FEE,
            max_priority_fee_per_gas=DEFAULT_PRIORITY_FEE,
        )

    def _transact(self, action: str, fn, private_key: Union[str, bytes],
                  value: int = 0, gas: Optional[int] = None) -> str:
        account = Account.from_key(private_key)
        with _rpc(action):
            params = {
                'from': account.address,
                'nonce': self.w3.eth.get_transaction_count(account.address),
                'value': value,
                'chainId': self.config.chain_id,
            }
            if gas is not None:
                params['gas'] = gas
            tx = fn.build_transaction(params)
            signed = account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.config.timeout * 4)

        tx_hex = Web3.to_hex(tx_hash)
        if receipt['status'] != 1:
            raise OperationReverted(f"{action} reverted in transaction {tx_hex}")
        logger.info(f"{action} mined in block {receipt['blockNumber']}: {tx_hex}")
        return tx_hex
