"""
Main ZeroRequiem client
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from .chain import ChainClient
from .config import ZeroRequiemConfig
from .errors import ChainCommunicationError, ZeroRequiemError
from .keys import StealthKeyPair
from .models import (
    Announcement,
    RelayerStatus,
    ScannedPayment,
    SendResult,
    StealthMetaAddress,
    UserOperation,
)
from .relayer import RelayerClient
from .stealth import GeneratedKeys, StealthProtocol
from .userop import UserOpBuilder
from .utils import Utils

logger = logging.getLogger(__name__)

ACCOUNT_SALT = 0

# Stealth EOA -> smart account entries kept per client
ACCOUNT_CACHE_SIZE = 256

Amount = Union[int, str, Decimal]


def _as_wei(amount: Amount) -> int:
    """Integers are wei; strings and Decimals are whole-coin amounts"""
    if isinstance(amount, int):
        return amount
    return Utils.to_wei(amount)


class ZeroRequiemClient:
    """
    High-level client for private payments.

    Example:
        >>> client = ZeroRequiemClient(ZeroRequiemConfig.from_env())
        >>> keys = client.generate_keys(wallet_key)
        >>> client.register_keys(wallet_key, keys.meta_address)
        >>> client.send(sender_key, recipient_address, "0.01")
        >>> payments = client.scan(keys.spending_key_pair.private_key,
        ...                        keys.viewing_key_pair.private_key)
        >>> client.withdraw(payments[0].stealth_private_key, my_address, payments[0].amount)
    """

    def __init__(self, config: Optional[ZeroRequiemConfig] = None, chain=None,
                 relayer=None):
        """
        Initialize ZeroRequiem client.

        Args:
            config: SDK configuration (default: BSC testnet deployment)
            chain: Chain collaborator (default: ChainClient on config.rpc_url)
            relayer: Sponsor/relay backend (default: RelayerClient on
                config.relayer_url)
        """
        self.config = config or ZeroRequiemConfig()
        self.chain = chain or ChainClient(self.config)
        self.relayer = relayer or RelayerClient(self.config.relayer_url, self.config.timeout)
        self.builder = UserOpBuilder(self.config, self.chain)
        self._accounts = OrderedDict()

    # Keys

    def generate_keys(self, wallet_private_key: Union[str, bytes]) -> GeneratedKeys:
        """
        Derive stealth keys by signing the derivation message with a wallet.

        The same wallet always produces the same keys on the same chain.
        """
        return StealthProtocol.derive_keys_from_account(wallet_private_key, self.config.chain_id)

    def derive_keys(self, signature: Union[str, bytes]) -> GeneratedKeys:
        """Derive stealth keys from a signature produced by an external wallet"""
        return StealthProtocol.derive_keys(signature, self.config.chain_id)

    def signing_message(self) -> str:
        """Message an external wallet must sign for derive_keys()"""
        return StealthProtocol.signing_message(self.config.chain_id)

    def register_keys(self, wallet_private_key: Union[str, bytes],
                      meta_address: StealthMetaAddress) -> str:
        """
        Publish stealth public keys so senders can find them.

        Returns:
            Transaction hash
        """
        return self.chain.publish_meta_address(meta_address, wallet_private_key)

    def lookup(self, address: str) -> Optional[StealthMetaAddress]:
        return self.chain.lookup_meta_address(address)

    def is_registered(self, address: str) -> bool:
        """Check if an address has registered stealth keys"""
        return self.lookup(address) is not None

    # Sending

    def stealth_account_address(self, stealth_address: str) -> str:
        """Smart-account address owned by a stealth EOA (cached)"""
        key = stealth_address.lower()
        if key in self._accounts:
            self._accounts.move_to_end(key)
            return self._accounts[key]

        account = self.chain.account_address(stealth_address, ACCOUNT_SALT)
        self._accounts[key] = account
        if len(self._accounts) > ACCOUNT_CACHE_SIZE:
            self._accounts.popitem(last=False)
        return account

    def _resolve_accounts(self, stealth_addresses: List[str]) -> List[str]:
        return self.chain.account_addresses(stealth_addresses, ACCOUNT_SALT)

    def send(self, sender_private_key: Union[str, bytes], recipient_address: str,
             amount: Amount) -> SendResult:
        """
        Pay a registered recipient through a fresh stealth account.

        Args:
            sender_private_key: Key of the paying wallet
            recipient_address: Recipient's public wallet address
            amount: Wei (int) or coins (str/Decimal, e.g. "0.01")

        Returns:
            SendResult with the tx hash and the stealth account credited
        """
        meta = self.lookup(recipient_address)
        if meta is None:
            raise ZeroRequiemError(f"Recipient has not registered stealth keys: {recipient_address}")

        prepared = StealthProtocol.prepare_send(meta)
        account = self.stealth_account_address(prepared.stealth_address)
        tx_hash = self.chain.deposit(
            account,
            prepared.ephemeral_public_key_x,
            prepared.ciphertext,
            _as_wei(amount),
            sender_private_key,
        )
        logger.info(f"Sent {_as_wei(amount)} wei to stealth account {account}")
        return SendResult(tx_hash=tx_hash, stealth_address=prepared.stealth_address,
                          stealth_account=account)

    # Receiving

    def scan(self, spending_private_key: Union[str, bytes],
             viewing_private_key: Union[str, bytes], from_block: int = 0,
             announcements: Optional[Iterable[Announcement]] = None) -> List[ScannedPayment]:
        """
        Find payments addressed to these keys.

        Args:
            spending_private_key: Recipient's spending key
            viewing_private_key: Recipient's viewing key
            from_block: First block to scan; pass the last scanned block + 1
                to resume
            announcements: Pre-fetched announcements (e.g. from the relayer);
                read from the chain when omitted

        Returns:
            Matching payments in chain order
        """
        if announcements is None:
            announcements = self.chain.announcements(from_block)
        return list(StealthProtocol.scan(
            spending_private_key,
            viewing_private_key,
            announcements,
            resolve_receivers=self._resolve_accounts,
        ))

    # Withdrawing

    def build_withdrawal(self, stealth_private_key: Union[str, bytes], recipient: str,
                         amount: Amount) -> UserOperation:
        """Unsponsored, unsigned withdrawal operation for a stealth key"""
        owner = StealthKeyPair(stealth_private_key).address
        return self.builder.build_withdrawal(
            self.stealth_account_address(owner), owner, recipient, _as_wei(amount), ACCOUNT_SALT
        )

    def withdraw(self, stealth_private_key: Union[str, bytes], recipient: str,
                 amount: Amount, sponsor=None, relay=None) -> str:
        """
        Withdraw from a stealth account with sponsored gas.

        Build, sponsor, sign and relay run strictly in this order; nothing
        reaches the chain before the relay step.

        Args:
            stealth_private_key: Key recovered by scan()
            recipient: Address receiving the funds
            amount: Wei (int) or coins (str/Decimal)
            sponsor: Object with sponsor(op) (default: the relayer)
            relay: Object with relay(op) (default: the relayer)

        Returns:
            Transaction hash
        """
        op = self.build_withdrawal(stealth_private_key, recipient, amount)
        grant = (sponsor or self.relayer).sponsor(op)
        op.paymaster_and_data = grant.paymaster_and_data
        op.signature = self.builder.sign(op, stealth_private_key)
        tx_hash = (relay or self.relayer).relay(op)
        logger.info(f"Withdrawal from {op.sender} relayed: {tx_hash}")
        return tx_hash

    # Balances

    def get_vault_balance(self, stealth_private_key: Union[str, bytes]) -> int:
        """Vault balance in wei of the stealth account behind a stealth key"""
        owner = StealthKeyPair(stealth_private_key).address
        return self.chain.vault_balance(self.stealth_account_address(owner))

    def get_paymaster_deposit(self) -> int:
        """Paymaster's remaining gas deposit on the entry point, in wei"""
        return self.chain.paymaster_deposit(self.config.paymaster_address)

    def status(self) -> RelayerStatus:
        """Relayer availability, paymaster deposit and contract addresses"""
        online = self.relayer.is_online()
        try:
            deposit = self.get_paymaster_deposit()
        except ChainCommunicationError as e:
            logger.warning(f"Could not read paymaster deposit: {e}")
            deposit = None
        return RelayerStatus(
            online=online,
            relayer_url=self.config.relayer_url,
            paymaster_deposit=deposit,
            contracts=self.config.contracts(),
        )

    def close(self):
        """Close the relayer session"""
        close = getattr(self.relayer, 'close', None)
        if close is not None:
            close()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, *args):
        """Context manager exit"""
        self.close()
