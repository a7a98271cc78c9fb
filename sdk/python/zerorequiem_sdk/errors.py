"""
Exceptions raised by the ZeroRequiem SDK
"""

from typing import Optional


class ZeroRequiemError(Exception):
    """Base class for all SDK errors"""


class InvalidScalar(ZeroRequiemError):
    """A sampled or derived scalar is outside [1, n-1]"""


class DecodingError(ZeroRequiemError):
    """Malformed curve point, key or hex payload"""


class NoFundsForSponsorship(ZeroRequiemError):
    """The stealth account has no vault balance, so gas is not sponsored"""

    def __init__(self, sender: str):
        super().__init__(f"Stealth address has no vault balance: {sender}")
        self.sender = sender


class ChainCommunicationError(ZeroRequiemError):
    """A read or write against the chain or the relayer failed"""


class OperationReverted(ChainCommunicationError):
    """
    The entry point reverted a submitted operation.

    The revert reason is passed through as reported by the chain.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SponsorshipExpired(OperationReverted):
    """Paymaster grant used outside its validity window (AA32)"""


class SponsorshipRejected(OperationReverted):
    """Paymaster validation failed or its signature did not verify (AA33/AA34)"""


class RelayerError(ChainCommunicationError):
    """The relayer service answered with an error"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def classify_revert(reason: str) -> OperationReverted:
    """
    Map an entry point revert reason to the matching exception.

    Args:
        reason: Revert reason string surfaced by the node

    Returns:
        Exception instance (not raised)
    """
    if "AA32" in reason:
        return SponsorshipExpired(reason)
    if "AA33" in reason or "AA34" in reason:
        return SponsorshipRejected(reason)
    return OperationReverted(reason)
