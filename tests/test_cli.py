"""Tests for the click command line interface."""

import os

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, platform, settings):
    """Run the CLI against the test platform."""
    from faker_suite.cli import cli

    def _invoke(args, **obj):
        context = {"platform": platform, "settings": settings}
        context.update(obj)
        return runner.invoke(cli, args, obj=context)

    return _invoke


class TestCustomerCommand:
    """Tests for `faker-suite customer`."""

    def test_creates_customers(self, invoke, platform):
        result = invoke(["customer", "--count", "3", "--with-addresses", "--address-count", "2"])

        assert result.exit_code == 0, result.output
        assert "Successfully created: 3 customers" in result.output
        assert len(platform.customers) == 3
        assert all(len(customer.addresses) == 2 for customer in platform.customers.values())
        for customer in platform.customers.values():
            assert customer.email in result.output

    def test_summary_table_is_capped(self, invoke):
        result = invoke(["customer", "--count", "12"])

        assert result.exit_code == 0, result.output
        assert "... and 2 more" in result.output

    def test_group_option(self, invoke, platform):
        result = invoke(["customer", "--group", "3"])

        assert result.exit_code == 0, result.output
        assert [customer.group_id for customer in platform.customers.values()] == [3]

    def test_invalid_config_fails_before_generating(self, invoke, platform):
        result = invoke(["customer", "--store", "99", "--group", "42"])

        assert result.exit_code == 1
        assert "Invalid store ID: 99" in result.output
        assert "Invalid customer group ID: 42" in result.output
        assert platform.customers == {}

    def test_disabled_suite(self, invoke):
        from faker_suite.settings import SuiteSettings

        result = invoke(["customer"], settings=SuiteSettings(_env_file=None, enabled=False))

        assert result.exit_code == 1
        assert "disabled" in result.output


class TestOrderCommand:
    """Tests for `faker-suite order`."""

    def test_creates_tagged_orders(self, invoke, platform):
        result = invoke([
            "order", "--count", "2", "--customer-type", "guest", "--sku", "TSHIRT-001", "--tag", "smoke",
        ])

        assert result.exit_code == 0, result.output
        assert "Success: 2, Failed: 0" in result.output
        assert "100000001 (ID: 1) [smoke]" in result.output
        assert "100000002 (ID: 2) [smoke]" in result.output
        assert all(order.comments == ["Test Order - Tag: smoke"] for order in platform.orders.values())

    def test_flags_reach_the_generator(self, invoke, platform):
        result = invoke([
            "order", "--count", "1", "--customer-type", "guest", "--sku", "TSHIRT-001,MUG-002",
            "--with-invoice", "--with-shipment", "--with-tax-exempt", "--currency", "EUR",
            "--payment-method", "banktransfer", "--order-status", "holded",
        ])

        assert result.exit_code == 0, result.output
        order = platform.orders[1]
        assert order.invoice_ids and order.shipment_ids
        assert order.tax_amount == 0.0
        assert order.currency_code == "EUR"
        assert order.payment_method == "banktransfer"
        assert order.status == "holded"

    def test_failures_exit_1(self, invoke, platform):
        result = invoke(["order", "--count", "2", "--customer-type", "guest", "--sku", "OOS-004"])

        assert result.exit_code == 1
        assert "Success: 0, Failed: 2" in result.output
        assert "Order 1: No products could be added to the quote" in result.output
        assert platform.orders == {}

    def test_invalid_customer_type(self, invoke, platform):
        result = invoke(["order", "--customer-type", "vip"])

        assert result.exit_code == 1
        assert "Invalid customer type: vip" in result.output
        assert platform.orders == {}

    def test_locale_not_allowed(self, invoke, platform):
        from faker_suite.settings import SuiteSettings

        settings = SuiteSettings(_env_file=None, allowed_locales="en_US,de_DE")
        result = invoke(["order", "--locale", "fr_FR"], settings=settings)

        assert result.exit_code == 1
        assert "Locale not allowed: fr_FR" in result.output
        assert platform.orders == {}

    def test_unknown_store(self, invoke):
        result = invoke(["order", "--store", "99"])

        assert result.exit_code == 1
        assert "No such store with id = 99" in result.output

    def test_disabled_suite(self, invoke, platform):
        from faker_suite.settings import SuiteSettings

        result = invoke(["order"], settings=SuiteSettings(_env_file=None, enabled=False))

        assert result.exit_code == 1
        assert platform.orders == {}

    def test_export(self, invoke, tmp_path):
        output = tmp_path / "export"

        result = invoke(["--output", str(output), "order", "--count", "1", "--customer-type", "new",
                         "--sku", "TSHIRT-001"])

        assert result.exit_code == 0, result.output
        assert os.path.exists(output / "orders.csv")
        assert os.path.exists(output / "customers.csv")

    def test_demo_platform(self, runner, settings):
        """Without a platform in the context the seeded demo store is used."""
        from faker_suite.cli import cli

        result = runner.invoke(
            cli, ["--seed", "7", "order", "--count", "2", "--customer-type", "guest"], obj={"settings": settings},
        )

        assert result.exit_code == 0, result.output
        assert "Success: 2, Failed: 0" in result.output


class TestCronCommand:
    """Tests for `faker-suite cron`."""

    def test_disabled(self, invoke):
        result = invoke(["cron"])

        assert result.exit_code == 0
        assert "disabled" in result.output

    def test_runs_job(self, invoke, platform):
        from faker_suite.settings import SuiteSettings

        settings = SuiteSettings(_env_file=None, cron_enabled=True, cron_customer_count=2, cron_order_count=1)
        result = invoke(["cron"], settings=settings)

        assert result.exit_code == 0, result.output
        assert "Customers: 2 generated, 0 failed" in result.output
        assert "Orders: 1 generated, 0 failed" in result.output
        assert len(platform.orders) == 1
