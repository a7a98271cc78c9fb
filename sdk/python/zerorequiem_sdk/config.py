"""
SDK configuration
"""

import os
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from dotenv import load_dotenv

from .constants import BSC_TESTNET, DEPLOYED, ENTRY_POINT_V06


@dataclass(frozen=True)
class ZeroRequiemConfig:
    """
    Contract addresses and endpoints shared by all SDK components.

    Passed explicitly to each component's constructor.
    """
    rpc_url: str = BSC_TESTNET['rpc_url']
    chain_id: int = BSC_TESTNET['chain_id']
    vault_address: str = DEPLOYED['vault']
    registry_address: str = DEPLOYED['registry']
    factory_address: str = DEPLOYED['factory']
    entry_point_address: str = ENTRY_POINT_V06
    paymaster_address: str = DEPLOYED['paymaster']
    relayer_url: str = DEPLOYED['relayer']
    timeout: int = 30

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'ZeroRequiemConfig':
        """
        Build a config from environment variables (after loading .env).

        Unset variables fall back to the BSC testnet deployment.
        """
        load_dotenv(dotenv_path)
        defaults = cls()
        return cls(
            rpc_url=os.getenv('RPC_URL', defaults.rpc_url),
            chain_id=int(os.getenv('CHAIN_ID', defaults.chain_id)),
            vault_address=os.getenv('VAULT_ADDRESS', defaults.vault_address),
            registry_address=os.getenv('REGISTRY_ADDRESS', defaults.registry_address),
            factory_address=os.getenv('FACTORY_ADDRESS', defaults.factory_address),
            entry_point_address=os.getenv('ENTRY_POINT_ADDRESS', defaults.entry_point_address),
            paymaster_address=os.getenv('PAYMASTER_ADDRESS', defaults.paymaster_address),
            relayer_url=os.getenv('RELAYER_URL', defaults.relayer_url),
            timeout=int(os.getenv('REQUEST_TIMEOUT', defaults.timeout)),
        )

    def contracts(self) -> Dict[str, str]:
        """Contract addresses keyed by role"""
        data = asdict(self)
        return {
            'vault': data['vault_address'],
            'registry': data['registry_address'],
            'factory': data['factory_address'],
            'paymaster': data['paymaster_address'],
            'entry_point': data['entry_point_address'],
        }
