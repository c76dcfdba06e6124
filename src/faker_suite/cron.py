"""
Scheduled generation job.

Run by a scheduler (cron, systemd timer, the ``faker-suite cron`` command).
Generates the configured number of customers and orders and logs the outcome.
The job never raises: a scheduler has nobody to report to.
"""

import logging
from typing import Dict

from .generators.customer import CustomerGenerator
from .generators.order import OrderGenerator
from .schemas import GeneratorConfig
from .settings import SuiteSettings

logger = logging.getLogger(__name__)


class ScheduledGeneration:
    """Unattended customer and order generation."""

    def __init__(
        self,
        settings: SuiteSettings,
        customer_generator: CustomerGenerator,
        order_generator: OrderGenerator,
    ):
        self.settings = settings
        self.customer_generator = customer_generator
        self.order_generator = order_generator

    def execute(self) -> Dict:
        """
        Run the job once.

        Returns:
            Summary with skipped, customers_generated, customers_failed,
            orders_generated and orders_failed
        """
        summary = {
            "skipped": False,
            "customers_generated": 0,
            "customers_failed": 0,
            "orders_generated": 0,
            "orders_failed": 0,
        }

        if not self.settings.enabled or not self.settings.cron_enabled:
            logger.debug("Faker Suite cron is disabled, skipping")
            summary["skipped"] = True
            return summary

        try:
            customer_count = self.settings.cron_customer_count
            if customer_count > 0:
                logger.info(f"Faker Suite: Generating {customer_count} customers via cron")

                config = GeneratorConfig(options={"with_addresses": True})
                results = self.customer_generator.generate_batch(config, customer_count)

                summary["customers_generated"] = sum(1 for r in results if r.success)
                summary["customers_failed"] = len(results) - summary["customers_generated"]
                logger.info(
                    f"Faker Suite: Generated {summary['customers_generated']} customers, "
                    f"{summary['customers_failed']} failed"
                )

            order_count = self.settings.cron_order_count
            if order_count > 0:
                logger.info(f"Faker Suite: Generating {order_count} orders via cron")

                config = GeneratorConfig(options={"count": order_count})
                result = self.order_generator.generate(config)

                summary["orders_generated"] = result.metadata.get("total_generated", 0)
                summary["orders_failed"] = result.metadata.get("total_failed", 0)
                logger.info(
                    f"Faker Suite: Generated {summary['orders_generated']} orders, "
                    f"{summary['orders_failed']} failed"
                )

        except Exception as e:
            logger.error(f"Faker Suite cron error: {e}", exc_info=True)
            summary["error"] = str(e)

        return summary
