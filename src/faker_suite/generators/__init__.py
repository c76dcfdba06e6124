"""Entity generators."""

from .base import AbstractGenerator
from .customer import CustomerGenerator
from .order import OrderContext, OrderGenerator
from .resolvers import PaymentMethodResolver, ShippingMethodResolver

__all__ = [
    "AbstractGenerator",
    "CustomerGenerator",
    "OrderGenerator",
    "OrderContext",
    "ShippingMethodResolver",
    "PaymentMethodResolver",
]
