"""
Bundler: submits signed operations to the entry point
"""

import logging
from typing import Union

from eth_account import Account

from .models import UserOperation

logger = logging.getLogger(__name__)


class Relay:
    """
    Submits one fully sponsored and signed operation per transaction.

    The relay account pays the gas and is named as the beneficiary of the
    entry point's refund. No queueing and no retries.
    """

    def __init__(self, chain, private_key: Union[str, bytes]):
        """
        Args:
            chain: Chain collaborator (see ChainClient)
            private_key: Funding key of the relay account
        """
        self.chain = chain
        self._private_key = private_key
        self.address = Account.from_key(private_key).address

    def relay(self, op: UserOperation) -> str:
        """
        Submit an operation via handleOps.

        Args:
            op: Operation with paymasterAndData and signature set

        Returns:
            Transaction hash

        Raises:
            SponsorshipExpired, SponsorshipRejected, OperationReverted:
                The entry point rejected the operation
            ChainCommunicationError: The submission did not reach the chain
            ValueError: The operation is not sponsored or not signed
        """
        if not op.paymaster_and_data:
            raise ValueError("Operation is not sponsored")
        if not op.signature:
            raise ValueError("Operation is not signed")
        logger.info(f"Relaying operation for {op.sender} (nonce {op.nonce})")
        return self.chain.handle_ops([op], self._private_key)

    def user_op_hash(self, op: UserOperation) -> bytes:
        """userOpHash as computed by the entry point itself"""
        return self.chain.entry_point_user_op_hash(op)
