"""
Shipping and payment method resolution.

Both resolvers walk a fallback chain and return the first method that is
usable for the cart, or None when nothing is. What happens after None is the
caller's decision (see MethodFallbackPolicy).

Shipping chain:
1. Configured method, if the cart has a rate for it
2. Store allow-list in random order, filtered to the collected rates
3. First collected rate
4. Common carriers that are active in the store configuration

Payment chain:
1. Configured method, if active and accepted by the cart
2. Store allow-list in random order, same check
3. Common payment methods, same check
"""

import logging
import random
from typing import List, Optional

from ..exceptions import PlatformError
from ..platform.base import HostPlatform
from ..schemas import Quote

logger = logging.getLogger(__name__)

# carrier code -> method code, in order of preference
COMMON_CARRIER_METHODS = {
    "flatrate": "flatrate_flatrate",
    "freeshipping": "freeshipping_freeshipping",
    "tablerate": "tablerate_bestway",
}

COMMON_PAYMENT_METHODS = ["checkmo", "cashondelivery", "banktransfer", "free", "purchaseorder"]

DEFAULT_SHIPPING_METHOD = "flatrate_flatrate"
DEFAULT_PAYMENT_METHOD = "checkmo"


class ShippingMethodResolver:
    """Picks a shipping method for a cart whose rates have been collected."""

    def __init__(self, platform: HostPlatform, rng: Optional[random.Random] = None):
        self.platform = platform
        self.rng = rng or random.Random()

    def resolve(
        self,
        quote: Quote,
        preferred: Optional[str] = None,
        allowed: Optional[List[str]] = None,
    ) -> Optional[str]:
        available = [rate.code for rate in quote.shipping_rates]

        if preferred:
            if preferred in available:
                logger.debug(f"Using configured shipping method: {preferred}")
                return preferred
            logger.warning(f"Configured shipping method {preferred} not available, trying fallback")

        if allowed:
            candidates = list(allowed)
            self.rng.shuffle(candidates)
            for method in candidates:
                if method in available:
                    logger.debug(f"Using allowed shipping method: {method}")
                    return method

        if available:
            logger.debug(f"Using available shipping rate: {available[0]}")
            return available[0]

        for carrier, method in COMMON_CARRIER_METHODS.items():
            if self.platform.is_carrier_active(quote.store_id, carrier):
                logger.debug(f"Using active carrier from config: {method}")
                return method

        logger.error("No shipping methods available for quote")
        return None


class PaymentMethodResolver:
    """Picks and assigns a payment method for a cart with collected totals."""

    def __init__(self, platform: HostPlatform, rng: Optional[random.Random] = None):
        self.platform = platform
        self.rng = rng or random.Random()

    def is_available(self, quote: Quote, method: str) -> bool:
        """Active in the store and accepted by the cart. Assigns the method on success."""
        if not self.platform.is_payment_method_active(quote.store_id, method):
            return False
        try:
            self.platform.assign_payment_method(quote, method)
        except PlatformError as e:
            logger.debug(f"Payment method {method} validation failed: {e}")
            return False
        return True

    def resolve(
        self,
        quote: Quote,
        preferred: Optional[str] = None,
        allowed: Optional[List[str]] = None,
    ) -> Optional[str]:
        if preferred:
            if self.is_available(quote, preferred):
                logger.debug(f"Using configured payment method: {preferred}")
                return preferred
            logger.warning(f"Configured payment method {preferred} not available, trying fallback")

        if allowed:
            candidates = list(allowed)
            self.rng.shuffle(candidates)
            for method in candidates:
                if self.is_available(quote, method):
                    logger.debug(f"Using allowed payment method: {method}")
                    return method

        for method in COMMON_PAYMENT_METHODS:
            if self.is_available(quote, method):
                logger.debug(f"Using common payment method: {method}")
                return method

        logger.error("No payment methods available for quote")
        return None
