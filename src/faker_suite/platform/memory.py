"""
In-memory host platform.

Keeps stores, the catalog, customers, carts and orders in process memory so
the generators can run without a real e-commerce backend. Used by the CLI
demo mode and by the test-suite.

Usage:
    platform = InMemoryPlatform()
    platform.add_website(Website(id=1, code="base", name="Main Website"))
    platform.add_store(Store(id=1, code="default", name="Default", website_id=1))
    platform.add_catalog_product(Product(sku="TSHIRT-001", name="T-Shirt", price=19.99, qty=100))
"""

import csv
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..exceptions import NoSuchEntityError, OutOfStockError, PlatformError, QuoteStateError
from ..schemas import (
    Address, Customer, CustomerGroup, Invoice, InvoiceItem, Order, OrderItem,
    Product, ProductSearch, Quote, QuoteItem, Region, Shipment, ShipmentItem, ShippingRate,
    Store, VIRTUAL_PRODUCT_TYPES, Website,
)
from .base import HostPlatform

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
FIRST_INCREMENT_ID = 100000001


@dataclass
class CarrierConfig:
    """Shipping carrier as configured in the host."""
    code: str
    title: str
    active: bool = True
    methods: Dict[str, float] = field(default_factory=dict)  # method code -> price
    per_item: bool = False
    countries: Optional[List[str]] = None  # None ships everywhere
    min_subtotal: float = 0.0


@dataclass
class PaymentMethodConfig:
    """Payment method as configured in the host."""
    code: str
    title: str
    active: bool = True
    zero_total_only: bool = False


class InMemoryPlatform(HostPlatform):
    """HostPlatform backed by dictionaries."""

    def __init__(self):
        self.websites: Dict[int, Website] = {}
        self.stores: Dict[int, Store] = {}
        self.groups: Dict[int, CustomerGroup] = {}
        self.regions: Dict[str, List[Region]] = {}
        self.carriers: Dict[str, CarrierConfig] = {}
        self.payment_methods: Dict[str, PaymentMethodConfig] = {}

        self.products: Dict[str, Product] = {}
        self.customers: Dict[int, Customer] = {}
        self.quotes: Dict[int, Quote] = {}
        self.orders: Dict[int, Order] = {}
        self.invoices: Dict[int, Invoice] = {}
        self.shipments: Dict[int, Shipment] = {}

        self.default_store_id: Optional[int] = None

        self._next_ids: Dict[str, int] = {}
        self._next_increment_id = FIRST_INCREMENT_ID

    def _next_id(self, entity: str) -> int:
        value = self._next_ids.get(entity, 1)
        self._next_ids[entity] = value + 1
        return value

    # =========================================================================
    # SEEDING
    # =========================================================================

    def add_website(self, website: Website) -> Website:
        self.websites[website.id] = website
        return website

    def add_store(self, store: Store) -> Store:
        if store.website_id not in self.websites:
            raise NoSuchEntityError("website", "id", store.website_id)
        self.stores[store.id] = store
        website = self.websites[store.website_id]
        if website.default_store_id is None:
            website.default_store_id = store.id
        if self.default_store_id is None:
            self.default_store_id = store.id
        return store

    def add_customer_group(self, group: CustomerGroup) -> CustomerGroup:
        self.groups[group.id] = group
        return group

    def add_region(self, region: Region) -> Region:
        self.regions.setdefault(region.country_id, []).append(region)
        return region

    def set_carrier(self, carrier: CarrierConfig) -> CarrierConfig:
        self.carriers[carrier.code] = carrier
        return carrier

    def set_payment_method(self, method: PaymentMethodConfig) -> PaymentMethodConfig:
        self.payment_methods[method.code] = method
        return method

    def add_catalog_product(self, product: Product) -> Product:
        if product.id is None:
            product.id = self._next_id("product")
        if product.created_at is None:
            product.created_at = datetime.now()
        self.products[product.sku] = product
        return product

    # =========================================================================
    # STORE SCOPE
    # =========================================================================

    def get_store(self, store_id: int) -> Store:
        if store_id not in self.stores:
            raise NoSuchEntityError("store", "id", store_id)
        return self.stores[store_id]

    def get_default_store(self) -> Store:
        if self.default_store_id is None:
            raise NoSuchEntityError("store", "id", None, "No default store is configured")
        return self.stores[self.default_store_id]

    def get_website(self, website_id: int) -> Website:
        if website_id not in self.websites:
            raise NoSuchEntityError("website", "id", website_id)
        return self.websites[website_id]

    def get_customer_group(self, group_id: int) -> CustomerGroup:
        if group_id not in self.groups:
            raise NoSuchEntityError("customer group", "id", group_id)
        return self.groups[group_id]

    def get_regions(self, country_id: str) -> List[Region]:
        return list(self.regions.get(country_id, []))

    def is_carrier_active(self, store_id: int, carrier_code: str) -> bool:
        carrier = self.carriers.get(carrier_code)
        return bool(carrier and carrier.active)

    def is_payment_method_active(self, store_id: int, method_code: str) -> bool:
        method = self.payment_methods.get(method_code)
        return bool(method and method.active)

    # =========================================================================
    # CATALOG
    # =========================================================================

    def get_product(self, sku: str, store_id: Optional[int] = None) -> Product:
        if sku not in self.products:
            raise NoSuchEntityError(
                "product", "sku", sku,
                "The product that was requested doesn't exist. Verify the product and try again.",
            )
        return self.products[sku]

    def search_products(self, criteria: ProductSearch) -> List[Product]:
        matches = []
        for product in sorted(self.products.values(), key=lambda p: p.id):
            if criteria.enabled_only and not product.enabled:
                continue
            if criteria.type_ids and product.type_id not in criteria.type_ids:
                continue
            if product.visibility in criteria.exclude_visibility:
                continue
            matches.append(product)

        start = (criteria.current_page - 1) * criteria.page_size
        return matches[start:start + criteria.page_size]

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    def get_customer(self, customer_id: int) -> Customer:
        if customer_id not in self.customers:
            raise NoSuchEntityError("customer", "customerId", customer_id)
        return self.customers[customer_id]

    def get_customer_by_email(self, email: str, website_id: Optional[int] = None) -> Customer:
        for customer in self.customers.values():
            if customer.email.lower() != email.lower():
                continue
            if website_id is None or customer.website_id == website_id:
                return customer
        raise NoSuchEntityError("customer", "email", email)

    def list_customers(self, store_id: Optional[int] = None, page_size: int = 100) -> List[Customer]:
        customers = [
            customer for customer in self.customers.values()
            if store_id is None or customer.store_id == store_id
        ]
        return customers[:page_size]

    def create_account(self, customer: Customer, password: str) -> Customer:
        if customer.website_id not in self.websites:
            raise NoSuchEntityError("website", "id", customer.website_id)
        if customer.store_id not in self.stores:
            raise NoSuchEntityError("store", "id", customer.store_id)
        if customer.group_id not in self.groups:
            raise NoSuchEntityError("customer group", "id", customer.group_id)
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise PlatformError(
                f"The password needs at least {MIN_PASSWORD_LENGTH} characters. "
                "Create a new password and try again."
            )
        try:
            self.get_customer_by_email(customer.email, customer.website_id)
        except NoSuchEntityError:
            pass
        else:
            raise PlatformError("A customer with the same email address already exists in an associated website.")

        customer.id = self._next_id("customer")
        customer.created_at = datetime.now()
        self.customers[customer.id] = customer
        logger.debug(f"Created customer account {customer.id} ({customer.email})")
        return customer

    def save_address(self, address: Address) -> Address:
        customer = self.get_customer(address.customer_id)
        if not address.firstname or not address.lastname or not address.street or not address.city:
            raise PlatformError("Address is missing required fields")

        if address.id is None:
            address.id = self._next_id("address")
            customer.addresses.append(address)

        # Only one default billing and one default shipping address per customer
        for other in customer.addresses:
            if other is address:
                continue
            if address.is_default_billing:
                other.is_default_billing = False
            if address.is_default_shipping:
                other.is_default_shipping = False
        return address

    # =========================================================================
    # CART
    # =========================================================================

    def create_quote(self, store: Store) -> Quote:
        return Quote(
            store_id=store.id,
            website_id=store.website_id,
            currency_code=store.base_currency,
        )

    def add_product(self, quote: Quote, product: Product, qty: int) -> None:
        """Add a product to the cart, merging quantities for a sku already in it."""
        if not product.is_saleable():
            raise OutOfStockError(f"Product that you are trying to add is not available: {product.sku}")

        existing = next((item for item in quote.items if item.sku == product.sku), None)
        requested = qty + (existing.qty if existing else 0)
        if requested > product.qty:
            raise OutOfStockError(f"The requested qty is not available for {product.sku}")

        if existing:
            existing.qty = requested
        else:
            quote.items.append(QuoteItem(
                product_id=product.id,
                sku=product.sku,
                name=product.name,
                type_id=product.type_id,
                qty=qty,
                price=product.price,
            ))

    def collect_shipping_rates(self, quote: Quote) -> None:
        quote.shipping_rates = []
        address = quote.shipping_address
        if quote.is_virtual or address is None or not address.country_id:
            return

        subtotal = sum(item.row_total for item in quote.items)
        item_qty = sum(item.qty for item in quote.items if item.type_id not in VIRTUAL_PRODUCT_TYPES)
        for carrier in self.carriers.values():
            if not carrier.active:
                continue
            if carrier.countries is not None and address.country_id not in carrier.countries:
                continue
            if subtotal < carrier.min_subtotal:
                continue
            for method, price in carrier.methods.items():
                amount = price * item_qty if carrier.per_item else price
                quote.shipping_rates.append(
                    ShippingRate(carrier=carrier.code, method=method, price=round(amount, 2))
                )

    def assign_payment_method(self, quote: Quote, method_code: str) -> None:
        method = self.payment_methods.get(method_code)
        if method is None:
            raise NoSuchEntityError("payment method", "code", method_code)
        if not method.active:
            raise PlatformError(f"The requested Payment Method is not available: {method_code}")
        if method.zero_total_only and quote.grand_total > 0:
            raise PlatformError(f"Payment method {method_code} requires a zero order total")
        quote.payment_method = method_code

    def collect_totals(self, quote: Quote) -> None:
        store = self.get_store(quote.store_id)
        subtotal = round(sum(item.row_total for item in quote.items), 2)
        discount = round(subtotal * quote.discount_percent / 100, 2)
        tax = 0.0 if quote.tax_exempt else round((subtotal - discount) * store.tax_rate, 2)

        shipping = 0.0
        if quote.shipping_method and not quote.is_virtual:
            rate = next((r for r in quote.shipping_rates if r.code == quote.shipping_method), None)
            shipping = rate.price if rate else 0.0

        quote.subtotal = subtotal
        quote.discount_amount = discount
        quote.tax_amount = tax
        quote.shipping_amount = shipping
        quote.grand_total = round(subtotal - discount + tax + shipping, 2)

    def save_quote(self, quote: Quote) -> Quote:
        if quote.id is None:
            quote.id = self._next_id("quote")
        self.quotes[quote.id] = quote
        return quote

    def place_order(self, quote: Quote) -> Order:
        if not quote.is_active:
            raise QuoteStateError(f"Cart {quote.id} is no longer active and cannot be placed")
        if not quote.items:
            raise QuoteStateError("Cart does not contain any items")
        if not quote.payment_method:
            raise QuoteStateError("Enter a valid payment method and try again.")
        if not quote.is_virtual and not quote.shipping_method:
            raise QuoteStateError("The shipping method is missing. Select the shipping method and try again.")
        if not quote.customer_email:
            raise QuoteStateError("Email has a wrong format")

        for item in quote.items:
            product = self.get_product(item.sku)
            if item.qty > product.qty:
                raise OutOfStockError(f"Not all of your products are available in the requested quantity: {item.sku}")

        self.save_quote(quote)
        for item in quote.items:
            product = self.products[item.sku]
            product.qty -= item.qty
            if product.qty == 0:
                product.is_in_stock = False

        increment_id = str(self._next_increment_id).zfill(9)
        self._next_increment_id += 1
        quote.reserved_order_id = increment_id
        quote.is_active = False

        order = Order(
            id=self._next_id("order"),
            increment_id=increment_id,
            quote_id=quote.id,
            store_id=quote.store_id,
            customer_id=quote.customer_id,
            customer_email=quote.customer_email,
            customer_firstname=quote.customer_firstname,
            customer_lastname=quote.customer_lastname,
            customer_is_guest=quote.customer_is_guest,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    sku=item.sku,
                    name=item.name,
                    type_id=item.type_id,
                    qty_ordered=item.qty,
                    price=item.price,
                    row_total=item.row_total,
                )
                for item in quote.items
            ],
            billing_address=quote.billing_address,
            shipping_address=None if quote.is_virtual else quote.shipping_address,
            shipping_method=None if quote.is_virtual else quote.shipping_method,
            payment_method=quote.payment_method,
            currency_code=quote.currency_code,
            subtotal=quote.subtotal,
            discount_amount=quote.discount_amount,
            tax_amount=quote.tax_amount,
            shipping_amount=quote.shipping_amount,
            grand_total=quote.grand_total,
            created_at=datetime.now(),
        )
        self.orders[order.id] = order
        logger.debug(f"Placed order {order.increment_id} from cart {quote.id}")
        return order

    # =========================================================================
    # ORDERS
    # =========================================================================

    def get_order(self, order_id: int) -> Order:
        if order_id not in self.orders:
            raise NoSuchEntityError("order", "id", order_id, "The entity that was requested doesn't exist.")
        return self.orders[order_id]

    def save_order(self, order: Order) -> Order:
        if order.id is None:
            order.id = self._next_id("order")
        self.orders[order.id] = order
        return order

    def prepare_invoice(self, order: Order, quantities: Optional[Dict[str, int]] = None) -> Invoice:
        if not order.can_invoice():
            raise PlatformError("The order does not allow an invoice to be created.")

        items = []
        for order_item in order.items:
            remaining = order_item.qty_ordered - order_item.qty_invoiced
            qty = remaining if quantities is None else min(quantities.get(order_item.sku, 0), remaining)
            if qty > 0:
                items.append(InvoiceItem(
                    sku=order_item.sku,
                    qty=qty,
                    price=order_item.price,
                    row_total=round(order_item.price * qty, 2),
                ))
        if not items:
            raise PlatformError("You can't create an invoice without products.")
        return Invoice(order=order, items=items)

    def save_invoice(self, invoice: Invoice) -> Invoice:
        if invoice.id is None:
            invoice.id = self._next_id("invoice")
            invoice.order.invoice_ids.append(invoice.id)
        self.invoices[invoice.id] = invoice
        return invoice

    def prepare_shipment(self, order: Order) -> Shipment:
        if not order.can_ship():
            raise PlatformError("The order does not allow a shipment to be created.")
        items = [
            ShipmentItem(sku=item.sku, qty=item.qty_ordered - item.qty_shipped)
            for item in order.items
            if not item.is_virtual and item.qty_ordered > item.qty_shipped
        ]
        return Shipment(order=order, items=items)

    def save_shipment(self, shipment: Shipment) -> Shipment:
        if shipment.id is None:
            shipment.id = self._next_id("shipment")
            shipment.order.shipment_ids.append(shipment.id)
        self.shipments[shipment.id] = shipment
        return shipment

    # =========================================================================
    # EXPORT
    # =========================================================================

    def _export_rows(self) -> Dict[str, List[Dict]]:
        customers, addresses, orders, order_items, invoices, shipments = [], [], [], [], [], []

        for customer in self.customers.values():
            customers.append(customer.model_dump(
                exclude={"addresses"},
                mode="json",
            ))
            for address in customer.addresses:
                row = address.model_dump(mode="json")
                row["street"] = "\n".join(address.street)
                addresses.append(row)

        for order in self.orders.values():
            row = order.model_dump(
                exclude={"items", "billing_address", "shipping_address", "comments", "invoice_ids", "shipment_ids"},
                mode="json",
            )
            row["billing_country"] = order.billing_address.country_id if order.billing_address else None
            row["shipping_country"] = order.shipping_address.country_id if order.shipping_address else None
            orders.append(row)
            for item in order.items:
                item_row = item.model_dump(mode="json")
                item_row["order_id"] = order.id
                order_items.append(item_row)

        for invoice in self.invoices.values():
            invoices.append({
                "invoice_id": invoice.id,
                "order_id": invoice.order_id,
                "state": invoice.state.name.lower(),
                "grand_total": invoice.grand_total,
                "total_qty": sum(item.qty for item in invoice.items),
            })

        for shipment in self.shipments.values():
            shipments.append({
                "shipment_id": shipment.id,
                "order_id": shipment.order_id,
                "total_qty": sum(item.qty for item in shipment.items),
            })

        return {
            "customers": customers,
            "addresses": addresses,
            "orders": orders,
            "order_items": order_items,
            "invoices": invoices,
            "shipments": shipments,
        }

    def save_to_csv(self, output_dir: str) -> Dict[str, str]:
        """
        Save all stored entities to CSV files.

        Args:
            output_dir: Directory to save CSV files

        Returns:
            Dictionary mapping dataset names to file paths
        """
        os.makedirs(output_dir, exist_ok=True)

        files = {}
        for name, data in self._export_rows().items():
            if not data:
                continue

            filepath = os.path.join(output_dir, f"{name}.csv")

            with open(filepath, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=data[0].keys())
                writer.writeheader()
                writer.writerows(data)

            files[name] = filepath
            logger.info(f"Saved {name}.csv ({len(data)} records)")

        return files
