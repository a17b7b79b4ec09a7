import logging
from typing import Any, Dict, Optional

import httpx

from turapay.config import Config
from turapay.errors import GatewayMisconfigured
from turapay.gateways.base import BaseGateway, GatewayResponse

logger = logging.getLogger(__name__)


class LipilaGateway(BaseGateway):
    """
    Lipila collections/disbursements API.
    Auth header: `x-api-key`
    Status vocabulary: Successful / Pending / Failed
    Reference ids are generated by the caller, one per attempt.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    @property
    def gateway_name(self) -> str:
        return "lipila"

    @property
    def api_key(self) -> str:
        # Read lazily so a key set after import is honoured
        return self._api_key if self._api_key is not None else Config.LIPILA_API_KEY

    @property
    def base_url(self) -> str:
        return (self._base_url or Config.LIPILA_BASE_URL).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            logger.error("LIPILA_API_KEY not configured")
            raise GatewayMisconfigured()
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "x-api-key": self.api_key,
        }

    async def _request(self, method: str, path: str, **kwargs) -> GatewayResponse:
        headers = self._headers()
        timeout = self._timeout or Config.LIPILA_TIMEOUT_SECONDS
        async with httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=self._transport
        ) as client:
            response = await client.request(method, path, **kwargs)

        text = response.text
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {"data": data} if data is not None else None
        return GatewayResponse(response.status_code, data, text)

    async def create_collection(self, payload: Dict[str, Any]) -> GatewayResponse:
        return await self._request("POST", "/collections", json=payload)

    async def collection_status(self, reference_id: str) -> GatewayResponse:
        return await self._request("GET", "/collections/check-status", params={"referenceId": reference_id})

    async def create_disbursement(self, payload: Dict[str, Any]) -> GatewayResponse:
        return await self._request("POST", "/disbursements", json=payload)

    async def disbursement_status(self, reference_id: str) -> GatewayResponse:
        return await self._request("GET", "/disbursements/check-status", params={"referenceId": reference_id})
