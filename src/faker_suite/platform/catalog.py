"""
Demo store for the in-memory platform.

Builds one website with two store views (en_US/US and de_DE/DE), customer
groups, a small region directory, shipping carriers, payment methods and a
catalog generated from product templates. The CLI uses it when no other
platform is wired in.
"""

import logging
import random
from enum import Enum
from typing import Optional

from faker import Faker

from ..schemas import CustomerGroup, Product, ProductType, Region, Store, Visibility, Website
from .memory import CarrierConfig, InMemoryPlatform, PaymentMethodConfig

logger = logging.getLogger(__name__)


class ProductCategory(str, Enum):
    """Product categories of the demo catalog."""
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    HOME_GARDEN = "home_garden"
    SPORTS = "sports"
    BOOKS = "books"
    SOFTWARE = "software"


# =============================================================================
# CONFIGURATION - Product templates for the demo catalog
# =============================================================================

# category -> brands and (product, min price, max price, type)
PRODUCT_TEMPLATES = {
    ProductCategory.ELECTRONICS: {
        "brands": ["Samsung", "Sony", "LG", "Philips", "Xiaomi"],
        "products": [
            ("Headphones", 29, 349, ProductType.SIMPLE),
            ("Smart Watch", 99, 499, ProductType.SIMPLE),
            ("Speaker", 49, 399, ProductType.SIMPLE),
            ("Extended Warranty", 19, 99, ProductType.VIRTUAL),
        ],
    },
    ProductCategory.CLOTHING: {
        "brands": ["Nike", "Adidas", "Levi's", "Uniqlo"],
        "products": [
            ("T-Shirt", 15, 59, ProductType.SIMPLE),
            ("Jeans", 39, 129, ProductType.SIMPLE),
            ("Hoodie", 35, 99, ProductType.SIMPLE),
            ("Outfit Bundle", 89, 199, ProductType.BUNDLE),
        ],
    },
    ProductCategory.HOME_GARDEN: {
        "brands": ["IKEA", "Bosch", "Gardena"],
        "products": [
            ("Coffee Machine", 49, 399, ProductType.SIMPLE),
            ("Lamp", 19, 149, ProductType.SIMPLE),
            ("Garden Tools Set", 29, 149, ProductType.SIMPLE),
        ],
    },
    ProductCategory.SPORTS: {
        "brands": ["Puma", "Reebok", "Decathlon"],
        "products": [
            ("Running Shoes", 59, 199, ProductType.CONFIGURABLE),
            ("Yoga Mat", 15, 79, ProductType.SIMPLE),
            ("Training Plan", 9, 39, ProductType.VIRTUAL),
        ],
    },
    ProductCategory.BOOKS: {
        "brands": ["Penguin", "HarperCollins", "Macmillan"],
        "products": [
            ("Fiction Novel", 9, 29, ProductType.SIMPLE),
            ("Cookbook", 15, 45, ProductType.SIMPLE),
            ("E-Book", 5, 19, ProductType.DOWNLOADABLE),
        ],
    },
    ProductCategory.SOFTWARE: {
        "brands": ["Adobe", "Microsoft", "JetBrains"],
        "products": [
            ("License Key", 49, 299, ProductType.VIRTUAL),
            ("Installer", 29, 199, ProductType.DOWNLOADABLE),
        ],
    },
}

DEMO_REGIONS = {
    "US": [("CA", "California"), ("NY", "New York"), ("TX", "Texas"), ("WA", "Washington")],
    "DE": [("BY", "Bayern"), ("BE", "Berlin"), ("HH", "Hamburg"), ("NRW", "Nordrhein-Westfalen")],
}

# Share of generated products that are disabled or sold out
DISABLED_RATE = 0.05
OUT_OF_STOCK_RATE = 0.05


def build_demo_platform(seed: Optional[int] = None, variants_per_product: int = 2) -> InMemoryPlatform:
    """
    Build an InMemoryPlatform populated with a demo store.

    Args:
        seed: Seed for the catalog randomness, None for a random catalog
        variants_per_product: Number of catalog entries per product template

    Returns:
        Ready to use InMemoryPlatform
    """
    rng = random.Random(seed)
    fake = Faker("en_US")
    fake.seed_instance(rng.randint(0, 2 ** 32 - 1))

    platform = InMemoryPlatform()

    platform.add_website(Website(id=1, code="base", name="Main Website"))
    platform.add_store(Store(
        id=1, code="default", name="Default Store View", website_id=1,
        locale="en_US", default_country="US", base_currency="USD",
        allowed_currencies=["USD", "EUR"], tax_rate=0.0825,
    ))
    platform.add_store(Store(
        id=2, code="de", name="German Store View", website_id=1,
        locale="de_DE", default_country="DE", base_currency="EUR",
        allowed_currencies=["EUR"], tax_rate=0.19,
    ))

    for group_id, code in enumerate(["NOT LOGGED IN", "General", "Wholesale", "Retailer"]):
        platform.add_customer_group(CustomerGroup(id=group_id, code=code))

    region_id = 1
    for country_id, regions in DEMO_REGIONS.items():
        for code, name in regions:
            platform.add_region(Region(id=region_id, country_id=country_id, code=code, name=name))
            region_id += 1

    platform.set_carrier(CarrierConfig(
        code="flatrate", title="Flat Rate", methods={"flatrate": 5.00}, per_item=True,
    ))
    platform.set_carrier(CarrierConfig(
        code="freeshipping", title="Free Shipping", active=False,
        methods={"freeshipping": 0.0}, min_subtotal=100.0,
    ))
    platform.set_carrier(CarrierConfig(
        code="tablerate", title="Best Way", methods={"bestway": 12.50},
    ))

    for code, title, active in [
        ("checkmo", "Check / Money order", True),
        ("banktransfer", "Bank Transfer Payment", True),
        ("cashondelivery", "Cash On Delivery", False),
        ("purchaseorder", "Purchase Order", False),
    ]:
        platform.set_payment_method(PaymentMethodConfig(code=code, title=title, active=active))
    platform.set_payment_method(PaymentMethodConfig(
        code="free", title="No Payment Information Required", zero_total_only=True,
    ))

    product_count = 0
    for category, template in PRODUCT_TEMPLATES.items():
        for product_name, min_price, max_price, type_id in template["products"]:
            for _ in range(variants_per_product):
                brand = rng.choice(template["brands"])
                sellable_qty = rng.randint(5, 500)
                roll = rng.random()
                sold_out = DISABLED_RATE <= roll < DISABLED_RATE + OUT_OF_STOCK_RATE
                platform.add_catalog_product(Product(
                    sku=f"{brand[:3].upper()}-{category.value[:3].upper()}-{product_count:04d}",
                    name=f"{brand} {product_name} {fake.word().title()}",
                    type_id=type_id,
                    price=round(rng.uniform(min_price, max_price), 2),
                    enabled=roll >= DISABLED_RATE,
                    visibility=Visibility.CATALOG_SEARCH,
                    qty=0 if sold_out else sellable_qty,
                    is_in_stock=not sold_out,
                    category=category.value,
                ))
                product_count += 1

    logger.info(f"Built demo platform with {product_count} products and {len(platform.stores)} stores")
    return platform
