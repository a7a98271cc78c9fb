"""
ZeroRequiem Python SDK

Private payments on EVM chains with stealth addresses and sponsored
(gasless) withdrawals.

Features:
- Deterministic stealth keys from a wallet signature
- Stealth address generation and encrypted announcements
- Announcement scanning and stealth key recovery
- ERC-4337 withdrawal operations with paymaster sponsorship
- Relayer API client
"""

__version__ = "1.0.0"
__author__ = "ZeroRequiem Team"

from .bundler import Relay
from .chain import ChainClient
from .client import ZeroRequiemClient
from .config import ZeroRequiemConfig
from .crypto import CurveMath
from .errors import (
    ZeroRequiemError,
    InvalidScalar,
    DecodingError,
    NoFundsForSponsorship,
    ChainCommunicationError,
    OperationReverted,
    SponsorshipExpired,
    SponsorshipRejected,
    RelayerError,
)
from .keys import StealthKeyPair
from .models import (
    CompressedPoint,
    StealthMetaAddress,
    EncryptedPayload,
    PreparedSend,
    Announcement,
    ScannedPayment,
    UserOperation,
    SponsorshipGrant,
    SendResult,
)
from .paymaster import SponsorAuthority
from .relayer import RelayerClient
from .stealth import GeneratedKeys, StealthProtocol
from .userop import UserOpBuilder
from .utils import Utils

__all__ = [
    "ZeroRequiemClient",
    "ZeroRequiemConfig",
    "ChainClient",
    "RelayerClient",
    "CurveMath",
    "StealthKeyPair",
    "StealthProtocol",
    "GeneratedKeys",
    "UserOpBuilder",
    "SponsorAuthority",
    "Relay",
    "CompressedPoint",
    "StealthMetaAddress",
    "EncryptedPayload",
    "PreparedSend",
    "Announcement",
    "ScannedPayment",
    "UserOperation",
    "SponsorshipGrant",
    "SendResult",
    "ZeroRequiemError",
    "InvalidScalar",
    "DecodingError",
    "NoFundsForSponsorship",
    "ChainCommunicationError",
    "OperationReverted",
    "SponsorshipExpired",
    "SponsorshipRejected",
    "RelayerError",
    "Utils",
]
