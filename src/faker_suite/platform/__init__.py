"""Host platform interface and the in-memory implementation."""

from .base import HostPlatform
from .catalog import build_demo_platform
from .memory import CarrierConfig, InMemoryPlatform, PaymentMethodConfig

__all__ = [
    "HostPlatform",
    "InMemoryPlatform",
    "CarrierConfig",
    "PaymentMethodConfig",
    "build_demo_platform",
]
