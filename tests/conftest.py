"""
Pytest configuration and shared fixtures.

Fixtures provide:
- A small hand-built store on the in-memory platform
- Settings that ignore any local .env file
- Seeded random sources and ready-made generators

Each test gets a fresh platform, so orders and customers never leak between tests.
"""

import random
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def rng():
    """Seeded random source so every run makes the same decisions."""
    return random.Random(1234)


@pytest.fixture
def settings():
    """Default settings, isolated from the environment's .env file."""
    from faker_suite.settings import SuiteSettings

    return SuiteSettings(_env_file=None)


@pytest.fixture
def platform():
    """
    In-memory store with one website and one US store view.

    Catalog:
        TSHIRT-001   simple, 100 in stock
        MUG-002      simple, 50 in stock
        EBOOK-003    virtual
        OOS-004      simple, out of stock
        DISABLED-005 simple, disabled

    Shipping: flatrate active, tablerate active for DE only, freeshipping inactive.
    Payment: checkmo and banktransfer active, cashondelivery inactive, free for zero totals.
    """
    from faker_suite.platform.memory import CarrierConfig, InMemoryPlatform, PaymentMethodConfig
    from faker_suite.schemas import CustomerGroup, Product, ProductType, Region, Store, Website

    platform = InMemoryPlatform()
    platform.add_website(Website(id=1, code="base", name="Main Website"))
    platform.add_store(Store(
        id=1, code="default", name="Default Store View", website_id=1,
        locale="en_US", default_country="US", base_currency="USD",
        allowed_currencies=["USD", "EUR"], tax_rate=0.08,
    ))
    for group_id, code in enumerate(["NOT LOGGED IN", "General", "Wholesale", "Retailer"]):
        platform.add_customer_group(CustomerGroup(id=group_id, code=code))

    platform.add_region(Region(id=1, country_id="US", code="CA", name="California"))
    platform.add_region(Region(id=2, country_id="US", code="NY", name="New York"))
    platform.add_region(Region(id=3, country_id="DE", code="BE", name="Berlin"))

    platform.set_carrier(CarrierConfig(code="flatrate", title="Flat Rate", methods={"flatrate": 5.0}))
    platform.set_carrier(CarrierConfig(
        code="tablerate", title="Best Way", methods={"bestway": 12.5}, countries=["DE"],
    ))
    platform.set_carrier(CarrierConfig(
        code="freeshipping", title="Free Shipping", active=False, methods={"freeshipping": 0.0},
    ))

    platform.set_payment_method(PaymentMethodConfig(code="checkmo", title="Check / Money order"))
    platform.set_payment_method(PaymentMethodConfig(code="banktransfer", title="Bank Transfer"))
    platform.set_payment_method(PaymentMethodConfig(code="cashondelivery", title="Cash On Delivery", active=False))
    platform.set_payment_method(PaymentMethodConfig(
        code="free", title="No Payment Information Required", zero_total_only=True,
    ))

    platform.add_catalog_product(Product(sku="TSHIRT-001", name="T-Shirt", price=20.0, qty=100))
    platform.add_catalog_product(Product(sku="MUG-002", name="Mug", price=8.5, qty=50))
    platform.add_catalog_product(Product(
        sku="EBOOK-003", name="E-Book", type_id=ProductType.VIRTUAL, price=12.0, qty=1000,
    ))
    platform.add_catalog_product(Product(
        sku="OOS-004", name="Sold Out Hoodie", price=45.0, qty=0, is_in_stock=False,
    ))
    platform.add_catalog_product(Product(
        sku="DISABLED-005", name="Retired Cap", price=15.0, qty=10, enabled=False,
    ))
    return platform


@pytest.fixture
def customer_generator(platform, settings, rng):
    from faker_suite.generators.customer import CustomerGenerator

    return CustomerGenerator(platform, settings, rng=rng)


@pytest.fixture
def order_generator(platform, settings, rng, customer_generator):
    from faker_suite.generators.order import OrderGenerator

    return OrderGenerator(platform, settings, rng=rng, customer_generator=customer_generator)


@pytest.fixture
def make_order_generator(platform, rng):
    """Build an order generator with custom settings."""
    from faker_suite.generators.order import OrderGenerator
    from faker_suite.settings import SuiteSettings

    def _make(**values):
        return OrderGenerator(platform, SuiteSettings(_env_file=None, **values), rng=rng)

    return _make
