from payments.gateways.base import PaymentGateway, UnknownProvider
from payments.gateways.click import ClickGateway
from payments.gateways.payme import PaymeGateway

GATEWAYS = {
    PaymeGateway.provider: PaymeGateway,
    ClickGateway.provider: ClickGateway,
}


def get_gateway(provider: str) -> PaymentGateway:
    try:
        gateway_class = GATEWAYS[provider]
    except KeyError:
        raise UnknownProvider(provider)
    return gateway_class()


def build_checkout_url(provider: str, booking, return_url=None) -> str:
    return get_gateway(provider).checkout_url(booking, return_url=return_url)
