from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class GatewayResponse:
    """Raw HTTP outcome of one gateway call."""

    def __init__(self, status_code: int, data: Optional[Dict[str, Any]], text: str = ""):
        self.status_code = status_code
        self.data = data if data is not None else {}
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def status(self) -> Optional[str]:
        return self.data.get("status")


class BaseGateway(ABC):
    """Abstract base for collection/disbursement payment gateways."""

    @property
    @abstractmethod
    def gateway_name(self) -> str:
        pass

    @abstractmethod
    async def create_collection(self, payload: Dict[str, Any]) -> GatewayResponse:
        """Pull funds from a payer. payload carries referenceId and paymentType."""
        pass

    @abstractmethod
    async def collection_status(self, reference_id: str) -> GatewayResponse:
        pass

    @abstractmethod
    async def create_disbursement(self, payload: Dict[str, Any]) -> GatewayResponse:
        """Push funds to a receiver's mobile wallet."""
        pass

    @abstractmethod
    async def disbursement_status(self, reference_id: str) -> GatewayResponse:
        pass
