"""
Data schemas and models for the faker suite.

This module defines the entities that flow between the generators and the
host platform using Pydantic models:
1. Generator input and output (GeneratorConfig, GeneratorResult)
2. Typed option and override models parsed from the free-form maps
3. Host entities (stores, customers, addresses, products)
4. Cart and order lifecycle (Quote, Order, Invoice, Shipment)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import InvalidOptionsError


class CustomerType(str, Enum):
    """How the order generator picks the customer for an order."""
    RANDOM = "random"
    EXISTING = "existing"
    NEW = "new"
    GUEST = "guest"


class Gender(IntEnum):
    """Gender codes accepted by the host customer entity."""
    MALE = 1
    FEMALE = 2
    NOT_SPECIFIED = 3


class ProductType(str, Enum):
    """Catalog product types."""
    SIMPLE = "simple"
    VIRTUAL = "virtual"
    DOWNLOADABLE = "downloadable"
    CONFIGURABLE = "configurable"
    BUNDLE = "bundle"


VIRTUAL_PRODUCT_TYPES = (ProductType.VIRTUAL, ProductType.DOWNLOADABLE)


class Visibility(IntEnum):
    """Catalog visibility of a product."""
    NOT_VISIBLE = 1
    CATALOG = 2
    SEARCH = 3
    CATALOG_SEARCH = 4


class OrderState(str, Enum):
    """Lifecycle state of a placed order."""
    NEW = "new"
    PROCESSING = "processing"
    COMPLETE = "complete"
    CLOSED = "closed"
    CANCELED = "canceled"
    HOLDED = "holded"


class OrderStatus(str, Enum):
    """Status labels an order can be moved to after creation."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    CLOSED = "closed"
    CANCELED = "canceled"
    HOLDED = "holded"


class InvoiceState(IntEnum):
    OPEN = 1
    PAID = 2
    CANCELED = 3


class MethodFallbackPolicy(str, Enum):
    """What to do when no shipping or payment method resolves."""
    STRICT = "strict"                 # raise and fail the order attempt
    FORCE_DEFAULT = "force_default"   # force flatrate_flatrate / checkmo


def format_validation_errors(exc: ValidationError) -> List[str]:
    """Flatten a Pydantic ValidationError into readable messages."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def split_csv(value: Any) -> Any:
    """Accept comma-separated strings where a list of strings is expected."""
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


# =============================================================================
# GENERATOR INPUT / OUTPUT
# =============================================================================

class GeneratorConfig(BaseModel):
    """
    Per-invocation generator configuration.

    Holds the store/website scope, the locale, attribute overrides for the
    generated entity and a free-form options map. Options are parsed into
    typed models (CustomerOptions, OrderOptions) by the generator that uses
    them.
    """
    store_id: Optional[int] = Field(None, description="Store scope")
    website_id: Optional[int] = Field(None, description="Website scope")
    locale: Optional[str] = Field(None, description="Locale used for fake data, e.g. de_DE")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Entity attribute overrides")
    options: Dict[str, Any] = Field(default_factory=dict, description="Generator specific knobs")

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def set_option(self, key: str, value: Any) -> "GeneratorConfig":
        self.options[key] = value
        return self


@dataclass
class GeneratorResult:
    """Result of a generation call."""
    type: str
    success: bool = False
    entity: Any = None
    entity_id: Optional[int] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_error(self, error: str) -> "GeneratorResult":
        self.errors.append(error)
        return self

    def add_warning(self, warning: str) -> "GeneratorResult":
        self.warnings.append(warning)
        return self

    def __str__(self):
        status = "✅ SUCCESS" if self.success else "❌ FAILED"
        suffix = f" (id={self.entity_id})" if self.entity_id is not None else ""
        return (f"{status} [{self.type}]{suffix}: "
                f"{len(self.errors)} errors, {len(self.warnings)} warnings")


class CustomerOverrides(BaseModel):
    """Allow-list of customer attributes that can be overridden."""
    model_config = ConfigDict(extra="forbid")

    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    middlename: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[int] = None
    taxvat: Optional[str] = None
    group_id: Optional[int] = None
    password: Optional[str] = None

    @classmethod
    def parse(cls, attributes: Dict[str, Any]) -> "CustomerOverrides":
        try:
            return cls.model_validate(attributes)
        except ValidationError as exc:
            raise InvalidOptionsError(format_validation_errors(exc)) from exc


class CustomerOptions(BaseModel):
    """Options understood by the customer generator."""
    model_config = ConfigDict(extra="forbid")

    count: int = Field(1, ge=0)
    with_addresses: bool = False
    address_count: int = Field(1, ge=0)

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> "CustomerOptions":
        try:
            return cls.model_validate(config.options)
        except ValidationError as exc:
            raise InvalidOptionsError(format_validation_errors(exc)) from exc


class OrderOptions(BaseModel):
    """Options understood by the order generator."""
    model_config = ConfigDict(extra="forbid")

    count: int = Field(10, ge=0, description="Number of orders in the batch")
    product_skus: List[str] = Field(default_factory=list)
    customer_type: CustomerType = CustomerType.RANDOM
    customer_id: Optional[int] = None
    customer_email: Optional[str] = None
    payment_method: Optional[str] = None
    shipping_method: Optional[str] = None
    product_type: Optional[ProductType] = None
    item_count: int = Field(0, ge=0, description="Distinct products per order, 0 for random")
    currency: Optional[str] = None
    with_discount: bool = False
    tax_exempt: bool = False
    partial_invoice: bool = False
    multi_address: bool = False
    order_status: Optional[OrderStatus] = None
    tag: Optional[str] = None
    order_comment: Optional[str] = None
    force_invoice: bool = False
    force_shipment: bool = False

    @field_validator("product_skus", mode="before")
    @classmethod
    def _split_skus(cls, value):
        return split_csv(value)

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> "OrderOptions":
        try:
            return cls.model_validate(config.options)
        except ValidationError as exc:
            raise InvalidOptionsError(format_validation_errors(exc)) from exc


# =============================================================================
# HOST ENTITIES (what the platform stores)
# =============================================================================

class Website(BaseModel):
    id: int
    code: str
    name: str
    default_store_id: Optional[int] = None


class Store(BaseModel):
    """A store view with the settings the generators need from it."""
    id: int
    code: str
    name: str
    website_id: int
    locale: str = "en_US"
    default_country: str = "US"
    base_currency: str = "USD"
    allowed_currencies: List[str] = Field(default_factory=lambda: ["USD"])
    tax_rate: float = Field(0.0, ge=0)


class CustomerGroup(BaseModel):
    id: int
    code: str


class Region(BaseModel):
    id: int
    country_id: str
    code: str
    name: str


class Address(BaseModel):
    """Customer or cart address."""
    id: Optional[int] = None
    customer_id: Optional[int] = None
    firstname: str = ""
    lastname: str = ""
    company: Optional[str] = None
    street: List[str] = Field(default_factory=list)
    city: str = ""
    region: Optional[str] = None
    region_id: Optional[int] = None
    postcode: Optional[str] = None
    country_id: Optional[str] = None
    telephone: str = ""
    is_default_billing: bool = False
    is_default_shipping: bool = False


class Customer(BaseModel):
    """
    Customer account.

    Fields are deliberately loose (plain strings and ints) so that a
    generated customer can be checked by CustomerValidator before it is
    handed to the host.
    """
    id: Optional[int] = None
    website_id: Optional[int] = None
    store_id: Optional[int] = None
    group_id: int = 1
    email: str = ""
    firstname: str = ""
    lastname: str = ""
    middlename: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[int] = None
    taxvat: Optional[str] = None
    addresses: List[Address] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()


class Product(BaseModel):
    """Catalog product."""
    id: Optional[int] = None
    sku: str
    name: str
    type_id: ProductType = ProductType.SIMPLE
    price: float = Field(..., ge=0)
    enabled: bool = True
    visibility: Visibility = Visibility.CATALOG_SEARCH
    qty: int = Field(0, ge=0, description="Salable quantity")
    is_in_stock: bool = True
    category: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_virtual(self) -> bool:
        return self.type_id in VIRTUAL_PRODUCT_TYPES

    def is_saleable(self) -> bool:
        """Enabled and in stock with a positive salable quantity."""
        return self.enabled and self.is_in_stock and self.qty > 0


class ProductSearch(BaseModel):
    """Search criteria for the product repository."""
    type_ids: Optional[List[ProductType]] = None
    enabled_only: bool = True
    exclude_visibility: List[Visibility] = Field(default_factory=list)
    page_size: int = Field(100, ge=1)
    current_page: int = Field(1, ge=1)


class ShippingRate(BaseModel):
    carrier: str
    method: str
    price: float = 0.0

    @property
    def code(self) -> str:
        return f"{self.carrier}_{self.method}"


# =============================================================================
# CART AND ORDER LIFECYCLE
# =============================================================================

class QuoteItem(BaseModel):
    product_id: Optional[int] = None
    sku: str
    name: str
    type_id: ProductType = ProductType.SIMPLE
    qty: int = Field(..., ge=1)
    price: float = 0.0

    @property
    def row_total(self) -> float:
        return round(self.price * self.qty, 2)


class Quote(BaseModel):
    """
    Shopping cart.

    Mutable until it is placed; afterwards ``is_active`` is False and the
    host refuses to place it again.
    """
    id: Optional[int] = None
    store_id: int
    website_id: Optional[int] = None
    currency_code: str = "USD"
    customer_id: Optional[int] = None
    customer_email: Optional[str] = None
    customer_firstname: Optional[str] = None
    customer_lastname: Optional[str] = None
    customer_is_guest: bool = False
    checkout_method: Optional[str] = None
    items: List[QuoteItem] = Field(default_factory=list)
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    shipping_rates: List[ShippingRate] = Field(default_factory=list)
    shipping_method: Optional[str] = None
    payment_method: Optional[str] = None
    discount_percent: float = Field(0.0, ge=0, le=100)
    tax_exempt: bool = False
    subtotal: float = 0.0
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    shipping_amount: float = 0.0
    grand_total: float = 0.0
    is_active: bool = True
    reserved_order_id: Optional[str] = None

    def assign_customer(self, customer: Customer) -> None:
        self.customer_id = customer.id
        self.customer_email = customer.email
        self.customer_firstname = customer.firstname
        self.customer_lastname = customer.lastname
        self.customer_is_guest = False
        self.checkout_method = "customer"

    def all_visible_items(self) -> List[QuoteItem]:
        return list(self.items)

    @property
    def is_virtual(self) -> bool:
        """True when every item is virtual or downloadable."""
        return bool(self.items) and all(item.type_id in VIRTUAL_PRODUCT_TYPES for item in self.items)


class OrderItem(BaseModel):
    product_id: Optional[int] = None
    sku: str
    name: str
    type_id: ProductType = ProductType.SIMPLE
    qty_ordered: int = Field(..., ge=1)
    qty_invoiced: int = 0
    qty_shipped: int = 0
    price: float = 0.0
    row_total: float = 0.0

    @property
    def is_virtual(self) -> bool:
        return self.type_id in VIRTUAL_PRODUCT_TYPES


_CLOSED_STATES = (OrderState.CANCELED, OrderState.CLOSED, OrderState.HOLDED)


class Order(BaseModel):
    """Placed order."""
    id: Optional[int] = None
    increment_id: Optional[str] = None
    quote_id: Optional[int] = None
    store_id: int
    customer_id: Optional[int] = None
    customer_email: Optional[str] = None
    customer_firstname: Optional[str] = None
    customer_lastname: Optional[str] = None
    customer_is_guest: bool = False
    items: List[OrderItem] = Field(default_factory=list)
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    shipping_method: Optional[str] = None
    payment_method: Optional[str] = None
    currency_code: str = "USD"
    subtotal: float = 0.0
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    shipping_amount: float = 0.0
    grand_total: float = 0.0
    total_paid: float = 0.0
    total_refunded: float = 0.0
    state: OrderState = OrderState.NEW
    status: str = OrderStatus.PENDING.value
    is_in_process: bool = False
    comments: List[str] = Field(default_factory=list)
    invoice_ids: List[int] = Field(default_factory=list)
    shipment_ids: List[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def is_virtual(self) -> bool:
        return bool(self.items) and all(item.is_virtual for item in self.items)

    def can_invoice(self) -> bool:
        if self.state in _CLOSED_STATES:
            return False
        return any(item.qty_invoiced < item.qty_ordered for item in self.items)

    def can_ship(self) -> bool:
        if self.state in _CLOSED_STATES or self.is_virtual:
            return False
        return any(
            item.qty_shipped < item.qty_ordered
            for item in self.items
            if not item.is_virtual
        )

    def can_creditmemo(self) -> bool:
        if self.state in _CLOSED_STATES:
            return False
        return round(self.total_paid - self.total_refunded, 2) > 0

    def add_comment(self, comment: str) -> None:
        self.comments.append(comment)

    def _refresh_state(self) -> None:
        fully_invoiced = all(item.qty_invoiced >= item.qty_ordered for item in self.items)
        fully_shipped = all(
            item.qty_shipped >= item.qty_ordered for item in self.items if not item.is_virtual
        )
        if fully_invoiced and fully_shipped:
            self.state = OrderState.COMPLETE
            self.status = OrderStatus.COMPLETE.value
        elif self.state == OrderState.NEW:
            self.state = OrderState.PROCESSING
            self.status = OrderStatus.PROCESSING.value


class InvoiceItem(BaseModel):
    sku: str
    qty: int = Field(..., ge=1)
    price: float = 0.0
    row_total: float = 0.0


class Invoice(BaseModel):
    """Invoice prepared for an order; register() and pay() update the order."""
    id: Optional[int] = None
    order: Order = Field(..., exclude=True)
    items: List[InvoiceItem] = Field(default_factory=list)
    state: InvoiceState = InvoiceState.OPEN
    grand_total: float = 0.0
    registered: bool = False

    @property
    def order_id(self) -> Optional[int]:
        return self.order.id

    def register(self) -> "Invoice":
        if self.registered:
            return self
        quantities = {item.sku: item.qty for item in self.items}
        for order_item in self.order.items:
            order_item.qty_invoiced += quantities.get(order_item.sku, 0)

        invoiced_rows = sum(item.row_total for item in self.items)
        if self.order.subtotal > 0:
            ratio = invoiced_rows / self.order.subtotal
            self.grand_total = round(self.order.grand_total * ratio, 2)
        else:
            self.grand_total = self.order.grand_total

        self.registered = True
        self.order._refresh_state()
        return self

    def pay(self) -> "Invoice":
        self.state = InvoiceState.PAID
        self.order.total_paid = round(self.order.total_paid + self.grand_total, 2)
        return self


class ShipmentItem(BaseModel):
    sku: str
    qty: int = Field(..., ge=1)


class Shipment(BaseModel):
    id: Optional[int] = None
    order: Order = Field(..., exclude=True)
    items: List[ShipmentItem] = Field(default_factory=list)
    registered: bool = False

    @property
    def order_id(self) -> Optional[int]:
        return self.order.id

    def register(self) -> "Shipment":
        if self.registered:
            return self
        quantities = {item.sku: item.qty for item in self.items}
        for order_item in self.order.items:
            order_item.qty_shipped += quantities.get(order_item.sku, 0)
        self.registered = True
        self.order._refresh_state()
        return self
