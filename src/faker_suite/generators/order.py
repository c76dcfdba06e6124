"""
Order generator.

Each order goes through the same linear pipeline. Stages fall back internally
but never go back to an earlier stage:

1. Customer resolution (explicit id/email, then guest/existing/new/random)
2. Cart creation, guest carts get a synthetic email
3. Product selection (explicit SKUs or a tiered catalog search)
4. Billing and shipping addresses
5. Shipping method resolution
6. Payment method resolution
7. Totals and cart persistence
8. Placement
9. Post-creation artifacts (invoice, shipment, credit memo, target status)

A batch catches failures per order, so one bad order never stops the rest.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from tqdm import tqdm

from ..exceptions import (
    GeneratorError, NoPaymentMethodError, NoProductsError, NoShippingMethodError,
    NoSuchEntityError, PlatformError, ResourceNotFoundError,
)
from ..providers import AddressProvider, PhoneProvider
from ..schemas import (
    Address, Customer, CustomerType, GeneratorConfig, GeneratorResult, MethodFallbackPolicy,
    Order, OrderOptions, OrderState, OrderStatus, ProductSearch, ProductType, Quote, Store,
    Visibility,
)
from ..settings import StoreSettings, SuiteSettings
from .base import AbstractGenerator
from .customer import CustomerGenerator
from .resolvers import (
    DEFAULT_PAYMENT_METHOD, DEFAULT_SHIPPING_METHOD, PaymentMethodResolver, ShippingMethodResolver,
)

logger = logging.getLogger(__name__)

# Random mode draws one of these with the given weights
CUSTOMER_TYPE_WEIGHTS = {
    CustomerType.GUEST: 1,
    CustomerType.EXISTING: 1,
    CustomerType.NEW: 1,
}

DISCOUNT_PERCENTAGES = [5, 10, 15, 20, 25]

MAX_CANDIDATES = 20
MAX_ITEMS_PER_ORDER = 5
MIN_ITEM_QTY = 1
MAX_ITEM_QTY = 3
RANDOM_SEARCH_PAGES = 5
LAST_RESORT_PAGE_SIZE = 10
EXISTING_CUSTOMER_PAGE_SIZE = 100

STATUS_STATES = {
    OrderStatus.PENDING: OrderState.NEW,
    OrderStatus.PROCESSING: OrderState.PROCESSING,
    OrderStatus.COMPLETE: OrderState.COMPLETE,
    OrderStatus.CLOSED: OrderState.CLOSED,
    OrderStatus.CANCELED: OrderState.CANCELED,
    OrderStatus.HOLDED: OrderState.HOLDED,
}


@dataclass
class OrderContext:
    """Everything one generate() call needs, resolved once and passed down."""
    config: GeneratorConfig
    options: OrderOptions
    store: Store
    store_settings: StoreSettings
    settings: SuiteSettings
    locale: Optional[str] = None
    index: int = 0
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(f"Order {self.index}: {message}" if self.index else message)


class OrderGenerator(AbstractGenerator):
    """
    Generates orders through the host cart and checkout APIs.

    Args:
        platform: Host platform
        settings: Suite settings
        rng: Random source for every probabilistic decision
        fakers: Faker pool
        customer_generator: Used for orders with a new customer
        address_provider: Used for synthesized cart addresses
        show_progress: Show a tqdm progress bar for batches
    """

    TYPE = "order"

    def __init__(
        self,
        platform,
        settings=None,
        rng=None,
        fakers=None,
        customer_generator: Optional[CustomerGenerator] = None,
        address_provider: Optional[AddressProvider] = None,
        show_progress: bool = False,
    ):
        super().__init__(platform, settings, rng, fakers)
        self.address_provider = address_provider or AddressProvider(
            platform, self.fakers, PhoneProvider(self.rng), self.rng
        )
        self.customer_generator = customer_generator or CustomerGenerator(
            platform, self.settings, self.rng, self.fakers, self.address_provider
        )
        self.shipping_resolver = ShippingMethodResolver(platform, self.rng)
        self.payment_resolver = PaymentMethodResolver(platform, self.rng)
        self.show_progress = show_progress

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def new_context(
        self,
        config: GeneratorConfig,
        options: Optional[OrderOptions] = None,
        index: int = 0,
    ) -> OrderContext:
        """
        Resolve store, settings and options for a generation call.

        Raises:
            InvalidOptionsError: The options map has unknown keys or bad values
            NoSuchEntityError: The store does not exist
        """
        options = options or OrderOptions.from_config(config)
        if config.store_id is not None:
            store = self.platform.get_store(config.store_id)
        else:
            store = self.platform.get_default_store()
        store_settings = self.settings.for_store(store.id)

        locale = config.locale
        if not locale:
            locale = store_settings.allowed_locales[0] if store_settings.allowed_locales else store.locale

        return OrderContext(
            config=config,
            options=options,
            store=store,
            store_settings=store_settings,
            settings=self.settings,
            locale=locale,
            index=index,
        )

    def generate(self, config: GeneratorConfig) -> GeneratorResult:
        """
        Generate a batch of ``count`` orders.

        Returns:
            Result with success when at least one order was created. Metadata
            holds total_requested, total_generated, total_failed and orders
            (a list of {id, increment_id}).
        """
        try:
            base_context = self.new_context(config)
        except (GeneratorError, PlatformError) as e:
            logger.error(f"Cannot start order generation: {e}")
            result = self.create_result(False, errors=[str(e)])
            result.metadata = {"total_requested": self._requested_count(config), "total_generated": 0,
                               "total_failed": 0, "orders": []}
            return result

        count = base_context.options.count
        self.log("Starting order generation", count=count, store=base_context.store.id)

        generated: List[Order] = []
        errors: List[str] = []
        warnings: List[str] = []

        for i in tqdm(range(count), desc="Orders", disable=not self.show_progress):
            context = replace(base_context, index=i + 1, warnings=[])
            try:
                order = self._generate_single_order(context)
            except Exception as e:
                logger.error(f"Failed to generate order: {e}")
                errors.append(f"Order {i + 1}: {e}")
                warnings.extend(context.warnings)
                continue

            generated.append(order)
            try:
                self.process_post_creation(order, context)
            except Exception as e:
                logger.error(f"Post-creation processing failed for order {order.increment_id}: {e}")
                context.warnings.append(f"Order {context.index}: Post-creation processing failed: {e}")
            warnings.extend(context.warnings)

        result = self.create_result(bool(generated), errors=errors, warnings=warnings)
        result.metadata = {
            "total_requested": count,
            "total_generated": len(generated),
            "total_failed": len(errors),
            "orders": [{"id": order.id, "increment_id": order.increment_id} for order in generated],
        }
        self.log("Finished order generation", generated=len(generated), failed=len(errors))
        return result

    @staticmethod
    def _requested_count(config: GeneratorConfig) -> int:
        """Requested batch size for metadata, 0 when the count option is unusable."""
        count = config.get_option("count", OrderOptions.model_fields["count"].default)
        try:
            return max(int(count), 0)
        except (TypeError, ValueError):
            return 0

    def generate_order_for_customer(
        self,
        customer: Customer,
        product_skus: Optional[List[str]] = None,
        context: Optional[OrderContext] = None,
    ) -> Order:
        """Place an order for an existing customer in the customer's store."""
        context = self._context_for(customer.store_id, product_skus, context)
        quote = self._create_quote(context, customer)
        self._add_products(quote, context)
        self._set_customer_addresses(quote, customer, context)
        self._set_shipping_and_payment(quote, context)
        return self._place_order(quote, context)

    def generate_guest_order(
        self,
        store_id: Optional[int] = None,
        product_skus: Optional[List[str]] = None,
        context: Optional[OrderContext] = None,
    ) -> Order:
        """Place a guest order with synthesized addresses and email."""
        context = self._context_for(store_id, product_skus, context)
        quote = self._create_quote(context)
        self._add_products(quote, context)
        self._set_synthesized_addresses(quote, context)
        self._set_shipping_and_payment(quote, context)
        return self._place_order(quote, context)

    def generate_order_with_new_customer(
        self,
        store_id: Optional[int] = None,
        product_skus: Optional[List[str]] = None,
        customer_overrides: Optional[Dict] = None,
        context: Optional[OrderContext] = None,
    ) -> Order:
        """Create a customer with the customer generator, then order for them."""
        context = self._context_for(store_id, product_skus, context)
        customer_config = GeneratorConfig(
            store_id=context.store.id,
            locale=context.config.locale,
            attributes=customer_overrides or {},
            options={"count": 1},
        )
        customer_result = self.customer_generator.generate(customer_config)
        if not customer_result.success or customer_result.entity is None:
            reason = "; ".join(customer_result.errors)
            raise GeneratorError(f"Failed to create customer for order: {reason}" if reason
                                 else "Failed to create customer for order")
        return self.generate_order_for_customer(customer_result.entity, context=context)

    def _context_for(
        self,
        store_id: Optional[int],
        product_skus: Optional[List[str]],
        context: Optional[OrderContext],
    ) -> OrderContext:
        if context is None:
            context = self.new_context(GeneratorConfig(store_id=store_id))
        elif store_id is not None and store_id != context.store.id:
            store = self.platform.get_store(store_id)
            context = replace(context, store=store, store_settings=self.settings.for_store(store.id))
        if product_skus is not None:
            context = replace(context, options=context.options.model_copy(update={"product_skus": list(product_skus)}))
        return context

    # =========================================================================
    # 1. CUSTOMER RESOLUTION
    # =========================================================================

    def _generate_single_order(self, context: OrderContext) -> Order:
        options = context.options

        if options.customer_id:
            try:
                customer = self.platform.get_customer(options.customer_id)
            except NoSuchEntityError as e:
                raise ResourceNotFoundError(f"Customer with ID {options.customer_id} not found") from e
            return self.generate_order_for_customer(customer, context=context)

        if options.customer_email:
            try:
                customer = self.platform.get_customer_by_email(options.customer_email, context.store.website_id)
            except NoSuchEntityError as e:
                raise ResourceNotFoundError(f"Customer with email {options.customer_email} not found") from e
            return self.generate_order_for_customer(customer, context=context)

        customer_type = options.customer_type
        if customer_type == CustomerType.RANDOM:
            types = list(CUSTOMER_TYPE_WEIGHTS)
            customer_type = self.rng.choices(types, weights=[CUSTOMER_TYPE_WEIGHTS[t] for t in types])[0]
            if customer_type == CustomerType.EXISTING:
                customer = self._random_existing_customer(context.store.id)
                if customer is not None:
                    return self.generate_order_for_customer(customer, context=context)
                logger.debug("No existing customers found, creating a new one")
                customer_type = CustomerType.NEW

        if customer_type == CustomerType.GUEST:
            return self.generate_guest_order(context=context)

        if customer_type == CustomerType.EXISTING:
            customer = self._random_existing_customer(context.store.id)
            if customer is None:
                raise ResourceNotFoundError("No existing customers found")
            return self.generate_order_for_customer(customer, context=context)

        return self.generate_order_with_new_customer(context=context)

    def _random_existing_customer(self, store_id: int) -> Optional[Customer]:
        customers = self.platform.list_customers(store_id=store_id, page_size=EXISTING_CUSTOMER_PAGE_SIZE)
        if not customers:
            return None
        return self.rng.choice(customers)

    # =========================================================================
    # 2. CART
    # =========================================================================

    def _create_quote(self, context: OrderContext, customer: Optional[Customer] = None) -> Quote:
        options = context.options
        quote = self.platform.create_quote(context.store)

        if options.currency:
            if options.currency in context.store.allowed_currencies:
                quote.currency_code = options.currency
            else:
                context.warn(f"Currency {options.currency} is not allowed in store {context.store.code}, "
                             f"using {quote.currency_code}")

        if options.with_discount:
            quote.discount_percent = self.rng.choice(DISCOUNT_PERCENTAGES)
        quote.tax_exempt = options.tax_exempt

        if customer is not None:
            quote.assign_customer(customer)
        else:
            quote.customer_is_guest = True
            quote.checkout_method = "guest"
            quote.customer_email = self._guest_email(context)

        return quote

    def _guest_email(self, context: OrderContext) -> str:
        fake = self.get_faker(context.locale)
        ss = context.store_settings
        return f"{ss.email_prefix}{fake.user_name()}@{ss.default_email_domain}"

    # =========================================================================
    # 3. PRODUCTS
    # =========================================================================

    def _add_products(self, quote: Quote, context: OrderContext) -> None:
        skus = context.options.product_skus or self._random_product_skus(context)
        if not skus:
            raise NoProductsError("No products available for order generation")

        for sku in skus:
            try:
                product = self.platform.get_product(sku, quote.store_id)
                if not product.is_saleable():
                    context.warn(f"Product {sku} is not saleable, skipping")
                    continue
                self.platform.add_product(quote, product, self.rng.randint(MIN_ITEM_QTY, MAX_ITEM_QTY))
            except PlatformError as e:
                context.warn(f"Could not add product {sku} to quote: {e}")

        if not quote.all_visible_items():
            raise NoProductsError("No products could be added to the quote")

    def _search_tier(self, attempt: int, type_filter: Optional[List[ProductType]]) -> ProductSearch:
        if attempt == 0:
            return ProductSearch(type_ids=type_filter or [ProductType.SIMPLE], page_size=100)
        if attempt == 1:
            return ProductSearch(type_ids=type_filter, exclude_visibility=[Visibility.NOT_VISIBLE], page_size=100)
        return ProductSearch(
            type_ids=type_filter or [ProductType.SIMPLE, ProductType.VIRTUAL, ProductType.DOWNLOADABLE],
            page_size=50,
            current_page=self.rng.randint(1, RANDOM_SEARCH_PAGES),
        )

    def _random_product_skus(self, context: OrderContext) -> List[str]:
        """
        Pick random products from the catalog.

        Tries three searches in order and stops at the first one that yields
        saleable products (at most MAX_CANDIDATES). When none does, falls back
        to any enabled products without checking saleability.
        """
        options = context.options
        type_filter = [options.product_type] if options.product_type else None

        candidates = []
        for attempt in range(3):
            try:
                products = self.platform.search_products(self._search_tier(attempt, type_filter))
            except PlatformError as e:
                logger.warning(f"Failed to load products on attempt {attempt + 1}: {e}")
                continue
            candidates = [product for product in products if product.is_saleable()][:MAX_CANDIDATES]
            if candidates:
                break

        if not candidates:
            try:
                candidates = self.platform.search_products(
                    ProductSearch(type_ids=type_filter, page_size=LAST_RESORT_PAGE_SIZE)
                )
            except PlatformError as e:
                logger.error(f"Failed to find any products for order generation: {e}")
                return []
            for product in candidates:
                logger.warning(f"Using potentially non-saleable product {product.sku} for order generation")

        if not candidates:
            return []

        if options.item_count:
            count = min(options.item_count, len(candidates))
        else:
            count = self.rng.randint(1, min(MAX_ITEMS_PER_ORDER, len(candidates)))
        selected = self.rng.sample(candidates, count)

        logger.info(f"Found {len(candidates)} saleable products, selected {len(selected)} for order")
        return [product.sku for product in selected]

    # =========================================================================
    # 4. ADDRESSES
    # =========================================================================

    def _set_customer_addresses(self, quote: Quote, customer: Customer, context: OrderContext) -> None:
        if not customer.addresses:
            self._set_synthesized_addresses(quote, context)
            return

        billing = customer.addresses[0]
        shipping = customer.addresses[1] if len(customer.addresses) > 1 else billing
        quote.billing_address = self._cart_address(billing)
        if shipping is billing and context.options.multi_address:
            quote.shipping_address = self._synthesize_address(context)
        else:
            quote.shipping_address = self._cart_address(shipping)

    def _set_synthesized_addresses(self, quote: Quote, context: OrderContext) -> None:
        billing = self._synthesize_address(context)
        quote.billing_address = billing
        if context.options.multi_address:
            quote.shipping_address = self._synthesize_address(context)
        else:
            quote.shipping_address = self._cart_address(billing)

        if quote.customer_is_guest and not quote.customer_firstname:
            quote.customer_firstname = billing.firstname
            quote.customer_lastname = billing.lastname

    @staticmethod
    def _cart_address(address: Address) -> Address:
        return address.model_copy(
            deep=True,
            update={"id": None, "is_default_billing": False, "is_default_shipping": False},
        )

    def _synthesize_address(self, context: OrderContext) -> Address:
        ss = context.store_settings
        data = self.address_provider.get_random(context.locale, country_id=context.store.default_country)
        fake = self.get_faker(context.locale)

        street = [line for line in data["street"] if line]
        if street:
            street[0] = ss.address_prefix + street[0]

        data.update({
            "firstname": ss.name_prefix + fake.first_name(),
            "lastname": ss.surname_prefix + fake.last_name(),
            "street": street,
            "country_id": data["country_id"] or context.store.default_country,
        })
        return Address(**data)

    # =========================================================================
    # 5-7. SHIPPING, PAYMENT, TOTALS
    # =========================================================================

    def _set_shipping_and_payment(self, quote: Quote, context: OrderContext) -> None:
        options = context.options
        ss = context.store_settings

        self.platform.save_quote(quote)

        if not quote.is_virtual:
            if quote.shipping_address is not None and not quote.shipping_address.country_id:
                quote.shipping_address.country_id = context.store.default_country
            try:
                self.platform.collect_shipping_rates(quote)
            except PlatformError as e:
                logger.warning(f"Failed to collect shipping rates: {e}")

            quote.shipping_method = self._resolve_shipping_method(quote, context)
            self.platform.save_quote(quote)

        self.platform.collect_totals(quote)

        payment_method = self.payment_resolver.resolve(quote, options.payment_method, ss.allowed_payment_methods)
        if payment_method is None:
            payment_method = self._apply_fallback_policy(
                context,
                NoPaymentMethodError(
                    "No payment methods available. "
                    "Please enable at least one payment method (e.g., Check/Money Order)."
                ),
                DEFAULT_PAYMENT_METHOD,
            )
            quote.payment_method = payment_method

        self.platform.save_quote(quote)

    def _resolve_shipping_method(self, quote: Quote, context: OrderContext) -> str:
        method = self.shipping_resolver.resolve(
            quote, context.options.shipping_method, context.store_settings.allowed_shipping_methods
        )
        if method is not None:
            return method
        return self._apply_fallback_policy(
            context,
            NoShippingMethodError(
                "No shipping methods available. "
                "Please enable at least one shipping method (e.g., Flat Rate)."
            ),
            DEFAULT_SHIPPING_METHOD,
        )

    def _apply_fallback_policy(self, context: OrderContext, error: GeneratorError, default: str) -> str:
        """Raise under the strict policy, otherwise force the default method."""
        if context.settings.method_fallback == MethodFallbackPolicy.STRICT:
            raise error
        context.warn(f"{error} Forcing {default}")
        return default

    # =========================================================================
    # 8. PLACEMENT
    # =========================================================================

    def _place_order(self, quote: Quote, context: OrderContext) -> Order:
        if not quote.is_virtual and not quote.shipping_method:
            logger.warning("No shipping method set before order placement, resolving again")
            try:
                self.platform.collect_shipping_rates(quote)
            except PlatformError as e:
                logger.warning(f"Failed to collect shipping rates: {e}")
            quote.shipping_method = self._resolve_shipping_method(quote, context)

        self.platform.collect_totals(quote)
        self.platform.save_quote(quote)
        order = self.platform.place_order(quote)

        options = context.options
        comment = options.order_comment or (f"Test Order - Tag: {options.tag}" if options.tag else None)
        if comment:
            order.add_comment(comment)
            try:
                self.platform.save_order(order)
            except Exception as e:
                logger.error(f"Failed to save comment on order {order.increment_id}: {e}")

        self.log("Placed order", increment_id=order.increment_id, grand_total=order.grand_total,
                 shipping=order.shipping_method, payment=order.payment_method)
        return order

    # =========================================================================
    # 9. POST-CREATION
    # =========================================================================

    def process_post_creation(self, order: Order, context: OrderContext) -> None:
        """
        Create the invoice, shipment and credit memo the options or chances ask for.

        Failures are logged and never fail the order, which already exists.
        """
        options = context.options
        settings = context.settings

        if options.force_invoice or self.chance(settings.invoice_chance):
            try:
                quantities = self._partial_quantities(order) if options.partial_invoice else None
                invoice = self.platform.prepare_invoice(order, quantities)
                invoice.register()
                invoice.pay()
                self.platform.save_invoice(invoice)
                self.platform.save_order(order)
                logger.info(f"Created invoice for order {order.increment_id}")
            except Exception as e:
                logger.error(f"Failed to create invoice for order {order.increment_id}: {e}")

        if (options.force_shipment or self.chance(settings.shipment_chance)) and order.can_ship():
            try:
                shipment = self.platform.prepare_shipment(order)
                shipment.register()
                self.platform.save_shipment(shipment)
                order.is_in_process = True
                self.platform.save_order(order)
                logger.info(f"Created shipment for order {order.increment_id}")
            except Exception as e:
                logger.error(f"Failed to create shipment for order {order.increment_id}: {e}")

        if self.chance(settings.creditmemo_chance) and order.can_creditmemo():
            # TODO: create credit memos once partial refunds are modelled in the platform
            logger.info(f"Credit memo creation for order {order.increment_id} skipped (not implemented)")

        if options.order_status:
            self._apply_order_status(order, options.order_status)

    def _partial_quantities(self, order: Order) -> Optional[Dict[str, int]]:
        """Invoice a strict subset of the ordered quantities, or everything for a single unit."""
        total = sum(item.qty_ordered - item.qty_invoiced for item in order.items)
        if total < 2:
            logger.debug(f"Order {order.increment_id} has a single unit, invoicing in full")
            return None

        remaining = self.rng.randint(1, total - 1)
        quantities = {}
        for item in order.items:
            take = min(item.qty_ordered - item.qty_invoiced, remaining)
            if take > 0:
                quantities[item.sku] = take
                remaining -= take
        return quantities

    def _apply_order_status(self, order: Order, status: OrderStatus) -> None:
        try:
            order.state = STATUS_STATES[status]
            order.status = status.value
            order.add_comment(f"Status set to {status.value} by faker suite")
            self.platform.save_order(order)
        except Exception as e:
            logger.error(f"Failed to set status {status.value} on order {order.increment_id}: {e}")
