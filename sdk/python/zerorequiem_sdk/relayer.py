"""
HTTP client for the ZeroRequiem relayer service
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from .errors import RelayerError
from .models import Announcement, SponsorshipGrant, UserOperation
from .utils import Utils

logger = logging.getLogger(__name__)


class RelayerClient:
    """
    Client for a relayer that sponsors and submits withdrawals.

    Offers the same sponsor()/relay() calls as SponsorAuthority and Relay,
    so either can back ZeroRequiemClient.withdraw().

    Example:
        >>> with RelayerClient("http://localhost:3001") as relayer:
        ...     grant = relayer.sponsor(op)
    """

    def __init__(self, base_url: str, timeout: int = 30):
        """
        Initialize relayer client.

        Args:
            base_url: Relayer URL, e.g. http://localhost:3001
            timeout: Request timeout in seconds (default: 30)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
        })

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{endpoint}",
                timeout=self.timeout,
                **kwargs
            )
        except requests.RequestException as e:
            raise RelayerError(f"Relayer unreachable: {e}") from e

        if not response.ok:
            try:
                message = response.json().get('error') or response.reason
            except ValueError:
                message = response.reason
            logger.warning(f"Relayer {endpoint} failed ({response.status_code}): {message}")
            raise RelayerError(message, status_code=response.status_code)
        return response.json()

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make GET request"""
        return self._request('GET', endpoint, params=params)

    def _post(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Make POST request"""
        return self._request('POST', endpoint, json=data)

    # Withdrawal flow

    def sponsor(self, op: UserOperation) -> SponsorshipGrant:
        """
        Ask the relayer's paymaster to sponsor an operation.

        Args:
            op: Unsponsored, unsigned operation

        Returns:
            SponsorshipGrant
        """
        data = self._post('/api/sponsor', {'userOp': op.to_dict()})
        return SponsorshipGrant(
            paymaster_and_data=Utils.to_bytes(data['paymasterAndData']),
            valid_after=int(data['validAfter']),
            valid_until=int(data['validUntil']),
        )

    def relay(self, op: UserOperation) -> str:
        """
        Submit a sponsored and signed operation.

        Returns:
            Transaction hash
        """
        data = self._post('/api/relay', {'userOp': op.to_dict()})
        return data['txHash']

    # Reads

    def get_announcements(self, from_block: Optional[int] = None) -> List[Announcement]:
        """
        Announcements the relayer indexed since a block.

        Args:
            from_block: Starting block (default: relayer's lookback window)
        """
        params = {'from': from_block} if from_block is not None else None
        data = self._get('/api/scan', params)
        return [Announcement.from_dict(item) for item in data['announcements']]

    def get_balance(self, stealth_address: str) -> int:
        """Vault balance of a stealth account in wei"""
        data = self._get(f'/api/balance/{stealth_address}')
        return int(data['balance'])

    def get_config(self) -> Dict[str, Any]:
        """
        Deployment the relayer serves.

        Returns:
            dict with chainId, entryPoint, paymaster, vault, factory,
            registry and relayerSigner
        """
        return self._get('/api/config')

    def is_online(self) -> bool:
        """True if the relayer health check answers"""
        try:
            self._get('/health')
            return True
        except RelayerError:
            return False

    def close(self):
        """Close the session"""
        self.session.close()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, *args):
        """Context manager exit"""
        self.close()
