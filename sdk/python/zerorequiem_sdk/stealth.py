"""
Stealth address protocol: key derivation, sending and scanning
"""

import hashlib
import logging
from dataclasses import dataclass
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

from eth_account import Account
from eth_account.messages import encode_defunct

from .constants import DEFAULT_CHAIN_ID, SIGNING_MESSAGE
from .crypto import CurveMath
from .errors import DecodingError
from .keys import StealthKeyPair
from .models import (
    Announcement,
    EncryptedPayload,
    PreparedSend,
    ScannedPayment,
    StealthMetaAddress,
)
from .utils import Utils

logger = logging.getLogger(__name__)

# Announcements resolved per resolve_receivers call
SCAN_BATCH_SIZE = 100


@dataclass(frozen=True)
class GeneratedKeys:
    """Spending and viewing key pairs plus their registrable public form"""
    spending_key_pair: StealthKeyPair
    viewing_key_pair: StealthKeyPair
    meta_address: StealthMetaAddress
    chain_id: Optional[int] = None


class StealthProtocol:
    """
    Sender and recipient sides of the stealth address scheme.

    A sender masks a random scalar r for the recipient's viewing key and pays
    address(spendingPub * r). The recipient recovers r from the announcement
    and spends with (spendingPriv * r) mod n.
    """

    @staticmethod
    def signing_message(chain_id: Optional[int] = None) -> str:
        """
        Message the user's wallet signs to derive stealth keys.

        The chain id is embedded for every chain but the default one so that
        a signature from one network cannot reproduce keys on another.
        """
        message = SIGNING_MESSAGE
        if chain_id and chain_id != DEFAULT_CHAIN_ID:
            message += f"\n\nChain ID: {chain_id}"
        return message

    @staticmethod
    def derive_keys(signature: Union[str, bytes], chain_id: Optional[int] = None) -> GeneratedKeys:
        """
        Derive spending and viewing key pairs from a wallet signature.

        Args:
            signature: Signature over signing_message(chain_id), 65 bytes
                (at least 64 are required)
            chain_id: Chain the signature was produced for

        Returns:
            GeneratedKeys; identical signatures give identical keys

        Raises:
            DecodingError: Signature shorter than 64 bytes
            InvalidScalar: A half hashes outside [1, n-1]
        """
        sig = Utils.to_bytes(signature)
        if len(sig) < 64:
            raise DecodingError(f"Signature too short: {len(sig)} bytes")

        spending = StealthKeyPair(hashlib.sha256(sig[:32]).digest())
        viewing = StealthKeyPair(hashlib.sha256(sig[32:64]).digest())
        return GeneratedKeys(
            spending_key_pair=spending,
            viewing_key_pair=viewing,
            meta_address=StealthMetaAddress(spending.compressed(), viewing.compressed()),
            chain_id=chain_id,
        )

    @staticmethod
    def derive_keys_from_account(private_key: Union[str, bytes],
                                 chain_id: Optional[int] = None) -> GeneratedKeys:
        """
        Sign the derivation message with a local wallet key and derive.

        Args:
            private_key: The user's primary wallet key
            chain_id: Target chain id
        """
        message = encode_defunct(text=StealthProtocol.signing_message(chain_id))
        signed = Account.sign_message(message, private_key=private_key)
        return StealthProtocol.derive_keys(bytes(signed.signature), chain_id)

    @staticmethod
    def prepare_send(recipient: StealthMetaAddress) -> PreparedSend:
        """
        Compute a one-time stealth address for a recipient.

        Args:
            recipient: Recipient's registered meta-address

        Returns:
            PreparedSend with the stealth address and the announcement data
            (ephemeral x-coordinate, ciphertext) to publish with the deposit
        """
        spending = StealthKeyPair.from_compressed(recipient.spending)
        viewing = StealthKeyPair.from_compressed(recipient.viewing)

        random_number = CurveMath.random_scalar()
        encrypted = viewing.encrypt(random_number)
        stealth = spending.mul_public_key(random_number)
        _, ephemeral_x = CurveMath.compress(encrypted.ephemeral_public_key)

        return PreparedSend(
            stealth_address=stealth.address,
            stealth_public_key=stealth.public_key,
            ephemeral_public_key_x=ephemeral_x,
            ciphertext=encrypted.ciphertext,
            random_number=random_number,
        )

    @staticmethod
    def compute_stealth_private_key(spending_private_key: Union[str, bytes],
                                    random_number: int) -> bytes:
        """Stealth private key = (spendingPriv * r) mod n"""
        return StealthKeyPair(spending_private_key).mul_private_key(random_number).private_key

    @staticmethod
    def scan(
        spending_private_key: Union[str, bytes],
        viewing_private_key: Union[str, bytes],
        announcements: Iterable[Announcement],
        resolve_receivers: Optional[Callable[[List[str]], List[str]]] = None,
        batch_size: int = SCAN_BATCH_SIZE,
    ) -> Iterator[ScannedPayment]:
        """
        Yield the announcements addressed to this recipient.

        Announcements carry only the ephemeral x-coordinate, so both parity
        candidates are tried in order and the first address match wins.
        Announcements that do not match are skipped.

        Args:
            spending_private_key: Recipient's spending key
            viewing_private_key: Recipient's viewing key
            announcements: Announcements in chain order
            resolve_receivers: Optional batch mapping from stealth EOAs to
                the addresses the vault credited (e.g. their smart
                accounts). Called at most once per batch of announcements.
            batch_size: Announcements per resolver call; without a resolver
                announcements are processed one at a time

        Yields:
            ScannedPayment for each match
        """
        spending = StealthKeyPair(spending_private_key)
        viewing = StealthKeyPair(viewing_private_key)
        if resolve_receivers is None:
            batch_size = 1

        iterator = iter(announcements)
        while True:
            batch = list(islice(iterator, batch_size))
            if not batch:
                return

            candidates = [StealthProtocol._candidates(spending, viewing, a) for a in batch]
            resolved = {}
            if resolve_receivers is not None:
                pending = [
                    address
                    for announcement, options in zip(batch, candidates)
                    if not any(address.lower() == announcement.receiver.lower()
                               for _, _, address in options)
                    for _, _, address in options
                ]
                owners = list(dict.fromkeys(pending))
                if owners:
                    resolved = dict(zip(owners, resolve_receivers(owners)))

            for announcement, options in zip(batch, candidates):
                receiver = announcement.receiver.lower()
                for prefix, random_number, address in options:
                    if address.lower() != receiver and resolved.get(address, '').lower() != receiver:
                        continue

                    logger.debug(f"Matched announcement {announcement.tx_hash} with prefix {prefix}")
                    yield ScannedPayment(
                        receiver=announcement.receiver,
                        amount=announcement.amount,
                        token=announcement.token,
                        pkx=announcement.pkx,
                        ciphertext=announcement.ciphertext,
                        block_number=announcement.block_number,
                        tx_hash=announcement.tx_hash,
                        random_number=random_number,
                        stealth_private_key=spending.mul_private_key(random_number).private_key,
                    )
                    break

    @staticmethod
    def _candidates(spending: StealthKeyPair, viewing: StealthKeyPair,
                    announcement: Announcement) -> List[Tuple[int, int, str]]:
        """(prefix, random number, stealth EOA) for each decodable parity"""
        if len(announcement.ciphertext) != 32:
            logger.debug(f"Skipping malformed announcement {announcement.tx_hash}")
            return []

        options = []
        for prefix, ephemeral in CurveMath.decompress_candidates(announcement.pkx):
            if ephemeral is None:
                continue
            random_number = viewing.decrypt(EncryptedPayload(ephemeral, announcement.ciphertext))
            if not CurveMath.is_valid_scalar(random_number):
                continue
            options.append((prefix, random_number, spending.mul_public_key(random_number).address))
        return options
