"""Synthetic customer and order generation for e-commerce test stores."""

from .exceptions import GeneratorError, PlatformError
from .generators import CustomerGenerator, OrderGenerator
from .platform import HostPlatform, InMemoryPlatform, build_demo_platform
from .schemas import (
    CustomerType,
    GeneratorConfig,
    GeneratorResult,
    MethodFallbackPolicy,
    OrderStatus,
)
from .settings import StoreSettings, SuiteSettings

__version__ = "0.1.0"

__all__ = [
    "CustomerGenerator",
    "OrderGenerator",
    "GeneratorConfig",
    "GeneratorResult",
    "CustomerType",
    "OrderStatus",
    "MethodFallbackPolicy",
    "SuiteSettings",
    "StoreSettings",
    "HostPlatform",
    "InMemoryPlatform",
    "build_demo_platform",
    "GeneratorError",
    "PlatformError",
]
