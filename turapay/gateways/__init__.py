from turapay.gateways.base import BaseGateway, GatewayResponse
from turapay.gateways.lipila import LipilaGateway


GATEWAYS = {
    "lipila": LipilaGateway(),
}

DEFAULT_GATEWAY = "lipila"


def get_gateway(name: str = DEFAULT_GATEWAY) -> BaseGateway:
    gateway = GATEWAYS.get(name)
    if gateway is None:
        raise ValueError(f"Unknown payment gateway: {name}")
    return gateway


__all__ = ["BaseGateway", "GatewayResponse", "LipilaGateway", "GATEWAYS", "get_gateway"]
