"""
Paymaster-side gas sponsorship
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Optional, Union

from eth_account import Account

from .config import ZeroRequiemConfig
from .constants import VALID_AFTER_SKEW, VALIDITY_PERIOD
from .errors import NoFundsForSponsorship
from .models import SponsorshipGrant, UserOperation
from .userop import SIGNATURE_LENGTH, encode_paymaster_and_data, sign_hash, user_op_hash

logger = logging.getLogger(__name__)

Hasher = Callable[[UserOperation, int, int], bytes]


class SponsorAuthority:
    """
    Signs paymaster grants for stealth accounts that hold vault funds.

    The grant covers the exact operation fields it was computed over and is
    valid from VALID_AFTER_SKEW seconds ago until VALIDITY_PERIOD seconds
    from now.

    Example:
        >>> sponsor = SponsorAuthority(config, chain, sponsor_key)
        >>> grant = sponsor.sponsor(op)
        >>> op.paymaster_and_data = grant.paymaster_and_data
    """

    def __init__(self, config: ZeroRequiemConfig, chain, private_key: Union[str, bytes],
                 hasher: Optional[Hasher] = None, clock: Callable[[], float] = time.time):
        """
        Args:
            config: SDK configuration (paymaster address, entry point, chain id)
            chain: Chain collaborator used for the vault balance read
            private_key: Paymaster signer key
            hasher: (op, valid_until, valid_after) -> digest. Defaults to
                chain.paymaster_hash (the paymaster contract's getHash) when
                the chain provides it, otherwise to the userOpHash of the
                operation carrying placeholder paymasterAndData.
            clock: Source of unix time
        """
        self.config = config
        self.chain = chain
        self._private_key = private_key
        self.signer_address = Account.from_key(private_key).address
        self.hasher = hasher or getattr(chain, 'paymaster_hash', None) or self._default_hash
        self.clock = clock

    def _default_hash(self, op: UserOperation, valid_until: int, valid_after: int) -> bytes:
        return user_op_hash(op, self.config.entry_point_address, self.config.chain_id)

    def placeholder_paymaster_and_data(self, valid_until: int, valid_after: int) -> bytes:
        """Final-length paymasterAndData with a zeroed signature"""
        return encode_paymaster_and_data(
            self.config.paymaster_address, valid_until, valid_after, bytes(SIGNATURE_LENGTH)
        )

    def sponsor(self, op: UserOperation) -> SponsorshipGrant:
        """
        Authorize gas sponsorship for an operation.

        Args:
            op: Operation without paymasterAndData or signature; not modified

        Returns:
            SponsorshipGrant with the final paymasterAndData

        Raises:
            NoFundsForSponsorship: The sender has no vault balance
        """
        balance = self.chain.vault_balance(op.sender)
        if balance == 0:
            logger.warning(f"Refusing sponsorship for {op.sender}: no vault balance")
            raise NoFundsForSponsorship(op.sender)

        now = int(self.clock())
        valid_after = now - VALID_AFTER_SKEW
        valid_until = now + VALIDITY_PERIOD

        op_for_hash = replace(
            op,
            paymaster_and_data=self.placeholder_paymaster_and_data(valid_until, valid_after),
        )
        digest = self.hasher(op_for_hash, valid_until, valid_after)
        signature = sign_hash(digest, self._private_key)

        logger.info(f"Sponsored operation for {op.sender} (nonce {op.nonce}) until {valid_until}")
        return SponsorshipGrant(
            paymaster_and_data=encode_paymaster_and_data(
                self.config.paymaster_address, valid_until, valid_after, signature
            ),
            valid_after=valid_after,
            valid_until=valid_until,
        )
