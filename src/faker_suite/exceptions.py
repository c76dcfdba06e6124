"""
Exception hierarchy for the faker suite.

Two families live here:
- GeneratorError and its subclasses are raised by the generators when a single
  generation attempt cannot continue (missing customer, no products, no
  shipping or payment method). A batch catches them per attempt.
- PlatformError and its subclasses are raised by host platform implementations
  (repositories, carts, orders).
"""

from typing import List, Optional


class GeneratorError(Exception):
    """A generation attempt failed with a user-facing message."""


class InvalidOptionsError(GeneratorError):
    """Generator options or attribute overrides could not be parsed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid generator options: " + "; ".join(self.errors))


class CustomerValidationError(GeneratorError):
    """A generated customer did not pass validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Customer validation failed: " + ", ".join(self.errors))


class ResourceNotFoundError(GeneratorError):
    """A customer or other referenced entity does not exist."""


class NoProductsError(GeneratorError):
    """No product could be found or added to the cart."""


class NoShippingMethodError(GeneratorError):
    """No shipping method could be resolved for the cart."""


class NoPaymentMethodError(GeneratorError):
    """No payment method could be resolved for the cart."""


# =============================================================================
# HOST PLATFORM ERRORS
# =============================================================================

class PlatformError(Exception):
    """Base class for errors raised by a host platform."""


class NoSuchEntityError(PlatformError):
    """Requested entity does not exist in the host."""

    def __init__(self, entity: str, field: str, value: object, message: Optional[str] = None):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(message or f"No such {entity} with {field} = {value}")


class OutOfStockError(PlatformError):
    """Product cannot be added to a cart in the requested quantity."""


class QuoteStateError(PlatformError):
    """Cart is not in a state that allows the requested operation."""
