"""
Host platform collaborator.

The generators never persist anything themselves. Every lookup and write goes
through a HostPlatform: store and website scope, the product and customer
repositories, carts, orders and their invoices and shipments.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..schemas import (
    Address, Customer, CustomerGroup, Invoice, Order, Product, ProductSearch,
    Quote, Region, Shipment, Store, Website,
)


class HostPlatform(ABC):
    """Interface the generators use to talk to the e-commerce platform."""

    # =========================================================================
    # STORE SCOPE
    # =========================================================================

    @abstractmethod
    def get_store(self, store_id: int) -> Store:
        """Raises NoSuchEntityError for an unknown store."""

    @abstractmethod
    def get_default_store(self) -> Store:
        pass

    @abstractmethod
    def get_website(self, website_id: int) -> Website:
        """Raises NoSuchEntityError for an unknown website."""

    @abstractmethod
    def get_customer_group(self, group_id: int) -> CustomerGroup:
        """Raises NoSuchEntityError for an unknown group."""

    @abstractmethod
    def get_regions(self, country_id: str) -> List[Region]:
        """Regions of a country from the directory, possibly empty."""

    @abstractmethod
    def is_carrier_active(self, store_id: int, carrier_code: str) -> bool:
        pass

    @abstractmethod
    def is_payment_method_active(self, store_id: int, method_code: str) -> bool:
        pass

    # =========================================================================
    # CATALOG
    # =========================================================================

    @abstractmethod
    def get_product(self, sku: str, store_id: Optional[int] = None) -> Product:
        """Raises NoSuchEntityError for an unknown sku."""

    @abstractmethod
    def search_products(self, criteria: ProductSearch) -> List[Product]:
        pass

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    @abstractmethod
    def get_customer(self, customer_id: int) -> Customer:
        pass

    @abstractmethod
    def get_customer_by_email(self, email: str, website_id: Optional[int] = None) -> Customer:
        pass

    @abstractmethod
    def list_customers(self, store_id: Optional[int] = None, page_size: int = 100) -> List[Customer]:
        pass

    @abstractmethod
    def create_account(self, customer: Customer, password: str) -> Customer:
        """Persist a new customer account and return it with its id set."""

    @abstractmethod
    def save_address(self, address: Address) -> Address:
        """Persist an address for ``address.customer_id`` and return it with its id set."""

    # =========================================================================
    # CART
    # =========================================================================

    @abstractmethod
    def create_quote(self, store: Store) -> Quote:
        pass

    @abstractmethod
    def add_product(self, quote: Quote, product: Product, qty: int) -> None:
        """Raises OutOfStockError when the product cannot be sold in that quantity."""

    @abstractmethod
    def collect_shipping_rates(self, quote: Quote) -> None:
        """Fill ``quote.shipping_rates`` for the current shipping address."""

    @abstractmethod
    def assign_payment_method(self, quote: Quote, method_code: str) -> None:
        """Raises PlatformError when the method cannot be used for the cart."""

    @abstractmethod
    def collect_totals(self, quote: Quote) -> None:
        pass

    @abstractmethod
    def save_quote(self, quote: Quote) -> Quote:
        pass

    @abstractmethod
    def place_order(self, quote: Quote) -> Order:
        """Convert the cart to an order. The cart cannot be placed again."""

    # =========================================================================
    # ORDERS
    # =========================================================================

    @abstractmethod
    def get_order(self, order_id: int) -> Order:
        pass

    @abstractmethod
    def save_order(self, order: Order) -> Order:
        pass

    @abstractmethod
    def prepare_invoice(self, order: Order, quantities: Optional[Dict[str, int]] = None) -> Invoice:
        """
        Build an invoice for the order.

        Args:
            order: Order to invoice
            quantities: sku -> qty to invoice, None for everything not yet invoiced
        """

    @abstractmethod
    def save_invoice(self, invoice: Invoice) -> Invoice:
        pass

    @abstractmethod
    def prepare_shipment(self, order: Order) -> Shipment:
        pass

    @abstractmethod
    def save_shipment(self, shipment: Shipment) -> Shipment:
        pass
