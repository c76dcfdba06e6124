"""Tests for the order generator."""

import pytest


def order_config(**options):
    from faker_suite.schemas import GeneratorConfig

    options.setdefault("count", 1)
    return GeneratorConfig(store_id=1, options=options)


def placed_orders(platform):
    return list(platform.orders.values())


class TestGuestOrders:
    """Guest checkout through generate()."""

    def test_guest_order_with_skus(self, order_generator, platform):
        result = order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert result.success, result.errors
        assert result.type == "order"
        assert result.entity is None
        assert result.metadata["total_generated"] == 1
        assert result.metadata["orders"] == [{"id": 1, "increment_id": "100000001"}]

        order = platform.orders[1]
        assert order.customer_is_guest
        assert order.customer_id is None
        assert order.customer_email.endswith("@example.com")
        assert order.customer_firstname == order.billing_address.firstname
        assert [item.sku for item in order.items] == ["TSHIRT-001"]
        assert 1 <= order.items[0].qty_ordered <= 3
        assert order.shipping_method == "flatrate_flatrate"
        assert order.payment_method == "checkmo"
        assert order.billing_address.country_id == "US"
        assert order.shipping_address.street == order.billing_address.street

    def test_quote_deactivated_and_stock_reduced(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["MUG-002"]))

        order = placed_orders(platform)[0]
        quote = platform.quotes[order.quote_id]
        assert not quote.is_active
        assert quote.reserved_order_id == order.increment_id
        assert platform.products["MUG-002"].qty == 50 - order.items[0].qty_ordered

    def test_totals(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        order = placed_orders(platform)[0]
        assert order.subtotal == round(20.0 * order.items[0].qty_ordered, 2)
        assert order.tax_amount == round(order.subtotal * 0.08, 2)
        assert order.shipping_amount == 5.0
        assert order.grand_total == round(order.subtotal + order.tax_amount + 5.0, 2)

    def test_prefixes_from_settings(self, make_order_generator, platform):
        generator = make_order_generator(
            name_prefix="TEST-", surname_prefix="QA-", address_prefix="Faker ", email_prefix="qa+",
            default_email_domain="shop.test.example.com",
        )
        generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        order = placed_orders(platform)[0]
        assert order.customer_email.startswith("qa+")
        assert order.customer_email.endswith("@shop.test.example.com")
        assert order.billing_address.firstname.startswith("TEST-")
        assert order.billing_address.lastname.startswith("QA-")
        assert order.billing_address.street[0].startswith("Faker ")

    def test_multi_address(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], multi_address=True))

        order = placed_orders(platform)[0]
        billing, shipping = order.billing_address, order.shipping_address
        assert (billing.firstname, billing.street) != (shipping.firstname, shipping.street)

    def test_virtual_order_skips_shipping(self, order_generator, platform):
        result = order_generator.generate(order_config(customer_type="guest", product_skus=["EBOOK-003"]))

        assert result.success, result.errors
        order = placed_orders(platform)[0]
        assert order.is_virtual
        assert order.shipping_method is None
        assert order.shipping_address is None
        assert order.shipping_amount == 0.0


class TestProductSelection:
    """Explicit SKU lists and the catalog search fallback."""

    def test_unsaleable_skus_skipped(self, order_generator, platform):
        result = order_generator.generate(order_config(
            customer_type="guest", product_skus="OOS-004,TSHIRT-001,DISABLED-005,NOPE-999",
        ))

        assert result.success
        assert [item.sku for item in placed_orders(platform)[0].items] == ["TSHIRT-001"]
        assert "Order 1: Product OOS-004 is not saleable, skipping" in result.warnings
        assert "Order 1: Product DISABLED-005 is not saleable, skipping" in result.warnings
        assert any(warning.startswith("Order 1: Could not add product NOPE-999") for warning in result.warnings)

    def test_no_saleable_sku_fails_without_order(self, order_generator, platform):
        result = order_generator.generate(order_config(customer_type="guest", product_skus=["OOS-004"], count=2))

        assert not result.success
        assert result.metadata["total_generated"] == 0
        assert result.metadata["total_failed"] == 2
        assert result.errors == [
            "Order 1: No products could be added to the quote",
            "Order 2: No products could be added to the quote",
        ]
        assert platform.orders == {}

    def test_random_products_are_saleable_simple(self, order_generator, platform):
        result = order_generator.generate(order_config(customer_type="guest", count=5))

        assert result.success, result.errors
        skus = {item.sku for order in placed_orders(platform) for item in order.items}
        assert skus <= {"TSHIRT-001", "MUG-002"}

    def test_item_count(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", item_count=2))

        assert sorted(item.sku for item in placed_orders(platform)[0].items) == ["MUG-002", "TSHIRT-001"]

    def test_product_type_filter(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_type="virtual"))

        order = placed_orders(platform)[0]
        assert [item.sku for item in order.items] == ["EBOOK-003"]

    def test_last_resort_products_still_skipped_when_unsaleable(self, order_generator, platform):
        """The last search tier still refuses products that cannot be sold."""
        for sku in ("TSHIRT-001", "MUG-002", "EBOOK-003"):
            platform.products[sku].is_in_stock = False

        result = order_generator.generate(order_config(customer_type="guest"))

        assert not result.success
        assert "No products could be added to the quote" in result.errors[0]
        assert any("is not saleable" in warning for warning in result.warnings)

    def test_empty_catalog(self, order_generator, platform):
        platform.products.clear()

        result = order_generator.generate(order_config(customer_type="guest"))

        assert result.errors == ["Order 1: No products available for order generation"]


class TestCustomerResolution:
    """Customer modes and explicit customers."""

    def test_existing_customer_by_email(self, order_generator, customer_generator, platform):
        customer = customer_generator.generate_customer_with_addresses(address_count=2)

        result = order_generator.generate(order_config(customer_email=customer.email, product_skus=["MUG-002"]))

        assert result.success, result.errors
        order = placed_orders(platform)[0]
        assert order.customer_id == customer.id
        assert not order.customer_is_guest
        assert order.customer_email == customer.email
        assert order.billing_address.street == customer.addresses[0].street
        assert order.shipping_address.street == customer.addresses[1].street
        assert order.billing_address.id is None

    def test_existing_customer_by_id(self, order_generator, customer_generator, platform):
        customer = customer_generator.generate_customer()

        result = order_generator.generate(order_config(customer_id=customer.id, product_skus=["MUG-002"]))

        assert result.success, result.errors
        order = placed_orders(platform)[0]
        assert order.customer_id == customer.id
        assert order.billing_address is not None

    def test_missing_customer(self, order_generator):
        result = order_generator.generate(order_config(customer_id=999))

        assert result.errors == ["Order 1: Customer with ID 999 not found"]

        result = order_generator.generate(order_config(customer_email="ghost@example.com"))

        assert result.errors == ["Order 1: Customer with email ghost@example.com not found"]

    def test_existing_mode_without_customers(self, order_generator, platform):
        result = order_generator.generate(order_config(customer_type="existing", count=3))

        assert not result.success
        assert result.metadata["total_failed"] == 3
        assert all(error.endswith("No existing customers found") for error in result.errors)

    def test_new_customer_mode(self, order_generator, platform):
        result = order_generator.generate(order_config(customer_type="new", product_skus=["TSHIRT-001"], count=2))

        assert result.success, result.errors
        assert len(platform.customers) == 2
        customer_ids = {order.customer_id for order in placed_orders(platform)}
        assert customer_ids == set(platform.customers)

    def test_random_mode(self, order_generator, platform):
        result = order_generator.generate(order_config(product_skus=["TSHIRT-001"], count=30))

        assert result.metadata["total_generated"] == 30
        guests = [order for order in placed_orders(platform) if order.customer_is_guest]
        members = [order for order in placed_orders(platform) if not order.customer_is_guest]
        assert guests and members

    def test_direct_entry_points(self, order_generator, customer_generator, platform):
        customer = customer_generator.generate_customer()

        for_customer = order_generator.generate_order_for_customer(customer, ["TSHIRT-001"])
        guest = order_generator.generate_guest_order(1, ["MUG-002"])
        with_new = order_generator.generate_order_with_new_customer(1, ["TSHIRT-001"], {"firstname": "Grace"})

        assert for_customer.customer_id == customer.id
        assert guest.customer_is_guest
        assert platform.get_customer(with_new.customer_id).firstname == "Grace"
        assert len(platform.orders) == 3


class TestMethodFallback:
    """Shipping and payment resolution inside the order pipeline."""

    def test_configured_methods(self, order_generator, platform):
        order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001"], payment_method="banktransfer",
            shipping_method="flatrate_flatrate",
        ))

        order = placed_orders(platform)[0]
        assert order.payment_method == "banktransfer"
        assert order.shipping_method == "flatrate_flatrate"

    def test_unavailable_configured_shipping_falls_back(self, order_generator, platform):
        """tablerate only ships to DE, the US order falls back to the collected flatrate."""
        result = order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001"], shipping_method="tablerate_bestway",
        ))

        assert result.success
        assert placed_orders(platform)[0].shipping_method == "flatrate_flatrate"

    def test_allowed_methods_from_settings(self, make_order_generator, platform):
        generator = make_order_generator(allowed_payment_methods="cashondelivery,banktransfer")
        generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert placed_orders(platform)[0].payment_method == "banktransfer"

    def test_strict_policy_without_shipping(self, order_generator, platform):
        platform.carriers["flatrate"].active = False
        platform.carriers["tablerate"].active = False

        result = order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert not result.success
        assert "No shipping methods available" in result.errors[0]
        assert platform.orders == {}

    def test_force_default_shipping(self, make_order_generator, platform):
        platform.carriers["flatrate"].active = False
        platform.carriers["tablerate"].active = False
        generator = make_order_generator(method_fallback="force_default")

        result = generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert result.success, result.errors
        assert placed_orders(platform)[0].shipping_method == "flatrate_flatrate"
        assert any("Forcing flatrate_flatrate" in warning for warning in result.warnings)

    def test_strict_policy_without_payment(self, order_generator, platform):
        platform.payment_methods["checkmo"].active = False
        platform.payment_methods["banktransfer"].active = False

        result = order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert not result.success
        assert "No payment methods available" in result.errors[0]

    def test_force_default_payment(self, make_order_generator, platform):
        platform.payment_methods["checkmo"].active = False
        platform.payment_methods["banktransfer"].active = False
        generator = make_order_generator(method_fallback="force_default")

        result = generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert result.success, result.errors
        assert placed_orders(platform)[0].payment_method == "checkmo"
        assert any("Forcing checkmo" in warning for warning in result.warnings)


class TestCartOptions:
    """Currency, discount, tax exemption and comments."""

    def test_discount(self, order_generator, platform):
        from faker_suite.generators.order import DISCOUNT_PERCENTAGES

        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], with_discount=True))

        order = placed_orders(platform)[0]
        percentages = {round(order.subtotal * pct / 100, 2) for pct in DISCOUNT_PERCENTAGES}
        assert order.discount_amount in percentages

    def test_tax_exempt(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], tax_exempt=True))

        assert placed_orders(platform)[0].tax_amount == 0.0

    def test_allowed_currency(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], currency="EUR"))

        assert placed_orders(platform)[0].currency_code == "EUR"

    def test_disallowed_currency_warns(self, order_generator, platform):
        result = order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001"], currency="GBP",
        ))

        assert result.success
        assert placed_orders(platform)[0].currency_code == "USD"
        assert any("Currency GBP is not allowed" in warning for warning in result.warnings)

    def test_tag_comment(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], tag="smoke"))

        assert placed_orders(platform)[0].comments == ["Test Order - Tag: smoke"]

    def test_custom_comment(self, order_generator, platform):
        order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001"], tag="smoke", order_comment="Load run 7",
        ))

        assert placed_orders(platform)[0].comments == ["Load run 7"]


class TestPostCreation:
    """Invoices, shipments and target status."""

    def test_force_invoice(self, order_generator, platform):
        from faker_suite.schemas import InvoiceState, OrderState

        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], force_invoice=True))

        order = placed_orders(platform)[0]
        invoice = platform.invoices[order.invoice_ids[0]]
        assert invoice.state == InvoiceState.PAID
        assert invoice.grand_total == order.grand_total
        assert order.total_paid == order.grand_total
        assert all(item.qty_invoiced == item.qty_ordered for item in order.items)
        assert order.state == OrderState.PROCESSING

    def test_invoice_and_shipment_complete_order(self, order_generator, platform):
        from faker_suite.schemas import OrderState

        order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001"], force_invoice=True, force_shipment=True,
        ))

        order = placed_orders(platform)[0]
        assert len(order.shipment_ids) == 1
        assert order.is_in_process
        assert order.state == OrderState.COMPLETE
        assert order.status == "complete"

    def test_partial_invoice(self, order_generator, platform):
        order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001", "MUG-002"], force_invoice=True, partial_invoice=True,
        ))

        order = placed_orders(platform)[0]
        invoiced = sum(item.qty_invoiced for item in order.items)
        ordered = sum(item.qty_ordered for item in order.items)
        assert 0 < invoiced < ordered
        assert order.can_invoice()
        assert 0 < order.total_paid < order.grand_total

    def test_partial_invoice_single_unit(self, order_generator, platform):
        from faker_suite.schemas import Order, OrderItem

        order = Order(store_id=1, items=[OrderItem(sku="MUG-002", name="Mug", qty_ordered=1)])

        assert order_generator._partial_quantities(order) is None

    def test_chance_100_invoices_and_ships_everything(self, make_order_generator, platform):
        generator = make_order_generator(invoice_chance=100, shipment_chance=100)

        result = generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], count=3))

        assert result.metadata["total_generated"] == 3
        for order in placed_orders(platform):
            assert len(order.invoice_ids) == 1
            assert len(order.shipment_ids) == 1

    def test_chance_0_creates_nothing(self, order_generator, platform):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], count=3))

        assert platform.invoices == {}
        assert platform.shipments == {}

    def test_virtual_order_never_ships(self, make_order_generator, platform):
        generator = make_order_generator(invoice_chance=100, shipment_chance=100, creditmemo_chance=100)

        generator.generate(order_config(customer_type="guest", product_skus=["EBOOK-003"]))

        order = placed_orders(platform)[0]
        assert order.shipment_ids == []
        assert len(order.invoice_ids) == 1

    @pytest.mark.parametrize("status,state", [
        ("holded", "holded"),
        ("canceled", "canceled"),
        ("processing", "processing"),
    ])
    def test_order_status(self, order_generator, platform, status, state):
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], order_status=status))

        order = placed_orders(platform)[0]
        assert order.status == status
        assert order.state.value == state
        assert f"Status set to {status} by faker suite" in order.comments

    def test_invoice_failure_keeps_order(self, order_generator, platform, monkeypatch):
        def locked(invoice):
            raise RuntimeError("invoice table locked")

        monkeypatch.setattr(platform, "save_invoice", locked)

        result = order_generator.generate(order_config(
            customer_type="guest", product_skus=["TSHIRT-001"], force_invoice=True,
        ))

        assert result.success, result.errors
        assert result.metadata["total_generated"] == 1
        assert result.metadata["total_failed"] == 0
        assert result.metadata["orders"] == [{"id": 1, "increment_id": "100000001"}]
        assert platform.invoices == {}

    def test_shipment_failure_keeps_order(self, order_generator, platform, monkeypatch, caplog):
        def unavailable(order, quantities=None):
            raise RuntimeError("shipping service unavailable")

        monkeypatch.setattr(platform, "prepare_shipment", unavailable)

        with caplog.at_level("ERROR", logger="faker_suite.generators.order"):
            result = order_generator.generate(order_config(
                customer_type="guest", product_skus=["TSHIRT-001"], force_invoice=True, force_shipment=True,
            ))

        assert result.metadata["total_generated"] == 1
        assert result.metadata["total_failed"] == 0
        assert result.metadata["orders"][0]["id"] == 1
        assert len(platform.orders[1].invoice_ids) == 1
        assert "Failed to create shipment for order 100000001: shipping service unavailable" in caplog.text

    def test_comment_save_failure_keeps_order(self, order_generator, platform, monkeypatch):
        def broken(order):
            raise RuntimeError("comment history full")

        monkeypatch.setattr(platform, "save_order", broken)

        result = order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], tag="qa"))

        assert result.metadata["total_generated"] == 1
        assert result.metadata["total_failed"] == 0
        assert platform.orders[1].comments == ["Test Order - Tag: qa"]

    def test_credit_memo_is_skipped(self, make_order_generator, platform, caplog):
        generator = make_order_generator(creditmemo_chance=100)

        with caplog.at_level("INFO", logger="faker_suite.generators.order"):
            result = generator.generate(order_config(
                customer_type="guest", product_skus=["TSHIRT-001"], force_invoice=True,
            ))

        order = placed_orders(platform)[0]
        assert result.metadata["total_generated"] == 1
        assert order.can_creditmemo()
        assert order.total_refunded == 0.0
        assert "Credit memo creation for order 100000001 skipped (not implemented)" in caplog.text


class TestBatch:
    """Batch results and metadata."""

    def test_counts_add_up(self, order_generator, platform):
        platform.products["MUG-002"].qty = 3

        result = order_generator.generate(order_config(customer_type="guest", product_skus=["MUG-002"], count=6))

        metadata = result.metadata
        assert metadata["total_requested"] == 6
        assert metadata["total_generated"] + metadata["total_failed"] == 6
        assert metadata["total_generated"] >= 1
        assert len(metadata["orders"]) == metadata["total_generated"]
        assert len(result.errors) == metadata["total_failed"]

    def test_zero_count(self, order_generator):
        result = order_generator.generate(order_config(count=0))

        assert not result.success
        assert result.metadata["total_generated"] == 0
        assert result.errors == []

    def test_invalid_options(self, order_generator):
        result = order_generator.generate(order_config(colour="red"))

        assert not result.success
        assert "Invalid generator options" in result.errors[0]
        assert result.metadata["total_generated"] == 0

    def test_unknown_store(self, order_generator):
        from faker_suite.schemas import GeneratorConfig

        result = order_generator.generate(GeneratorConfig(store_id=99, options={"count": 1}))

        assert result.errors == ["No such store with id = 99"]
        assert result.metadata["total_requested"] == 1

    @pytest.mark.parametrize("options,requested", [
        ({"count": "abc"}, 0),
        ({"colour": "red"}, 10),
    ])
    def test_requested_count_on_bad_options(self, order_generator, options, requested):
        from faker_suite.schemas import GeneratorConfig

        result = order_generator.generate(GeneratorConfig(store_id=1, options=options))

        assert not result.success
        assert result.metadata["total_requested"] == requested

    def test_context_is_per_call(self, order_generator):
        """Nothing from one call leaks into the next."""
        order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"], currency="GBP"))
        result = order_generator.generate(order_config(customer_type="guest", product_skus=["TSHIRT-001"]))

        assert result.warnings == []
