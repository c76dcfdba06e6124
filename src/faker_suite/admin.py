"""
Admin "generate orders" action.

Takes submitted form data, runs the order generator and turns the outcome
into notices for the admin user.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from .generators.order import OrderGenerator
from .schemas import GeneratorConfig, split_csv
from .settings import SuiteSettings

logger = logging.getLogger(__name__)

DEFAULT_ORDER_COUNT = 10
DEFAULT_STORE_ID = 1


@dataclass
class Notice:
    """Message shown to the admin user."""
    level: str  # success, warning or error
    message: str

    def __str__(self):
        return f"[{self.level.upper()}] {self.message}"


def generate_orders_action(
    post_data: Dict,
    order_generator: OrderGenerator,
    settings: SuiteSettings,
) -> List[Notice]:
    """
    Handle a submitted order generation form.

    Args:
        post_data: Form fields order_count, store_id, customer_type, product_skus, locale
        order_generator: Generator to run
        settings: Suite settings, checked for the enabled flag

    Returns:
        Notices describing the outcome
    """
    if not settings.enabled:
        return [Notice("error", "Faker Suite is disabled. Enable it in configuration.")]

    notices = []
    try:
        config = GeneratorConfig(
            store_id=int(post_data.get("store_id") or DEFAULT_STORE_ID),
            locale=post_data.get("locale") or None,
            options={
                "count": int(post_data.get("order_count") or DEFAULT_ORDER_COUNT),
                "customer_type": post_data.get("customer_type") or "random",
                "product_skus": split_csv(post_data.get("product_skus") or []),
            },
        )

        result = order_generator.generate(config)
        generated = result.metadata.get("total_generated", 0)
        failed = result.metadata.get("total_failed", 0)

        if generated > 0:
            notices.append(Notice("success", f"Successfully generated {generated} orders."))
        if failed > 0:
            notices.append(Notice("warning", f"{failed} orders failed to generate."))
        if result.errors and not failed:
            notices.append(Notice("error", "Error generating orders: " + "; ".join(result.errors)))

    except ValueError as e:
        logger.error(f"Invalid order generation request: {e}")
        notices.append(Notice("error", f"Error generating orders: {e}"))

    return notices
