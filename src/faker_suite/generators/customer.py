"""
Customer generator.

Builds a random customer profile with a locale-aware Faker, applies the
attribute overrides, validates the result and registers the account with the
host. Optionally attaches generated addresses.

Optional profile fields are filled with fixed probabilities:
- middlename 30%, prefix 20%, suffix 10%
- date of birth 40% (between 18 and 65 years ago)
- gender 60%, tax/VAT number 15%
"""

import logging
import string
from datetime import date
from typing import Dict, List, Optional, Union

from ..exceptions import CustomerValidationError, InvalidOptionsError, PlatformError
from ..providers import AddressProvider, PhoneProvider, fill_digits
from ..schemas import (
    Address, Customer, CustomerOptions, CustomerOverrides, Gender, GeneratorConfig,
    GeneratorResult, Store,
)
from ..validators import CustomerValidator, is_valid_email
from .base import AbstractGenerator

logger = logging.getLogger(__name__)

MIDDLENAME_RATE = 30
PREFIX_RATE = 20
SUFFIX_RATE = 10
DOB_RATE = 40
GENDER_RATE = 60
TAXVAT_RATE = 15

DOB_MIN_AGE = 18
DOB_MAX_AGE = 65

TAXVAT_FORMATS = {
    "de_DE": "DE#########",
    "fr_FR": "FR##########",
    "it_IT": "IT###########",
    "es_ES": "ES#########",
    "nl_NL": "NL#########B##",
    "default": "##-#######",  # US EIN
}

PASSWORD_SYMBOLS = "!@#$%&*"


def years_ago(today: date, years: int) -> date:
    """Same calendar day ``years`` years before today; Feb 29 maps to Feb 28."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


class CustomerGenerator(AbstractGenerator):
    """
    Generates customer accounts.

    Usage:
        generator = CustomerGenerator(platform, settings, rng=random.Random(42))
        result = generator.generate(GeneratorConfig(store_id=1, options={"with_addresses": True}))
    """

    TYPE = "customer"

    def __init__(
        self,
        platform,
        settings=None,
        rng=None,
        fakers=None,
        address_provider: Optional[AddressProvider] = None,
        validator: Optional[CustomerValidator] = None,
    ):
        super().__init__(platform, settings, rng, fakers)
        self.address_provider = address_provider or AddressProvider(
            platform, self.fakers, PhoneProvider(self.rng), self.rng
        )
        self.validator = validator or CustomerValidator()

    def generate(self, config: GeneratorConfig) -> GeneratorResult:
        """
        Generate one customer, with addresses when the with_addresses option is set.

        Failures are returned as an unsuccessful result, never raised.
        """
        try:
            options = CustomerOptions.from_config(config)
            overrides = CustomerOverrides.parse(config.attributes)

            customer = self.generate_customer(
                config.website_id, config.store_id, overrides, config.locale
            )

            warnings = []
            if options.with_addresses:
                locale = config.locale or self.platform.get_store(customer.store_id).locale
                warnings = self._attach_addresses(customer, options.address_count, locale)

            result = self.create_result(True, customer, warnings=warnings)
            result.metadata = {
                "customer_id": customer.id,
                "email": customer.email,
                "address_count": len(customer.addresses),
            }
            return result

        except Exception as e:
            logger.error(f"Failed to generate customer: {e}")
            return self.create_result(False, errors=[str(e)])

    def _resolve_store(self, website_id: Optional[int], store_id: Optional[int]) -> Store:
        if store_id is not None:
            return self.platform.get_store(store_id)
        if website_id is not None:
            website = self.platform.get_website(website_id)
            if website.default_store_id is not None:
                return self.platform.get_store(website.default_store_id)
        return self.platform.get_default_store()

    def generate_customer(
        self,
        website_id: Optional[int] = None,
        store_id: Optional[int] = None,
        overrides: Union[CustomerOverrides, Dict, None] = None,
        locale: Optional[str] = None,
    ) -> Customer:
        """
        Generate, validate and register one customer.

        Args:
            website_id: Website scope, defaults to the store's website
            store_id: Store scope, defaults to the website's or the platform default store
            overrides: Attribute overrides applied after random generation
            locale: Faker locale, defaults to the store locale

        Returns:
            The persisted customer

        Raises:
            InvalidOptionsError: Overrides contain unknown keys or bad values
            CustomerValidationError: The customer failed validation
            PlatformError: The host rejected the account
        """
        if not isinstance(overrides, CustomerOverrides):
            overrides = CustomerOverrides.parse(overrides or {})

        store = self._resolve_store(website_id, store_id)
        website_id = website_id or store.website_id
        locale = locale or store.locale
        fake = self.get_faker(locale)

        customer = Customer(
            website_id=website_id,
            store_id=store.id,
            email=fake.unique.safe_email(),
            firstname=fake.first_name(),
            lastname=fake.last_name(),
        )

        if self.chance(MIDDLENAME_RATE):
            customer.middlename = fake.first_name()
        if self.chance(PREFIX_RATE):
            customer.prefix = fake.prefix() or None
        if self.chance(SUFFIX_RATE):
            customer.suffix = fake.suffix() or None
        if self.chance(DOB_RATE):
            today = date.today()
            dob = fake.date_between_dates(
                date_start=years_ago(today, DOB_MAX_AGE),
                date_end=years_ago(today, DOB_MIN_AGE),
            )
            customer.dob = dob.strftime("%Y-%m-%d")
        if self.chance(GENDER_RATE):
            customer.gender = self.rng.choice([Gender.MALE, Gender.FEMALE]).value
        if self.chance(TAXVAT_RATE):
            customer.taxvat = self.generate_taxvat(locale)

        updates = overrides.model_dump(exclude_unset=True, exclude={"password"})
        if updates.get("group_id") is None:
            updates.pop("group_id", None)
        customer = customer.model_copy(update=updates)

        errors = self.validator.validate(customer)
        if errors:
            raise CustomerValidationError(errors)

        password = overrides.password or self.generate_password()
        customer = self.platform.create_account(customer, password)

        self.log("Generated customer", customer_id=customer.id, email=customer.email, website_id=customer.website_id)
        return customer

    def generate_customer_with_addresses(
        self,
        website_id: Optional[int] = None,
        store_id: Optional[int] = None,
        address_count: int = 1,
        overrides: Union[CustomerOverrides, Dict, None] = None,
        locale: Optional[str] = None,
    ) -> Customer:
        """
        Generate one customer and attach address_count addresses.

        The first address that is created successfully becomes the default
        billing and shipping address. Address failures are logged and never
        fail the customer.
        """
        customer = self.generate_customer(website_id, store_id, overrides, locale)
        locale = locale or self.platform.get_store(customer.store_id).locale
        self._attach_addresses(customer, address_count, locale)
        return customer

    def _attach_addresses(self, customer: Customer, address_count: int, locale: str) -> List[str]:
        warnings = []
        created = 0

        for i in range(address_count):
            try:
                data = self.address_provider.get_random(locale)
                data["street"] = [line for line in data["street"] if line]

                errors = self.validator.validate_address(data)
                if errors:
                    raise ValueError(", ".join(errors))

                address = Address(customer_id=customer.id, **data)
                address.is_default_billing = created == 0
                address.is_default_shipping = created == 0

                self.platform.save_address(address)
                created += 1

            except (PlatformError, ValueError) as e:
                message = f"Failed to create address {i + 1} for customer {customer.id}: {e}"
                logger.warning(message)
                warnings.append(message)

        self.log("Generated customer with addresses", customer_id=customer.id, address_count=created)
        return warnings

    def generate_password(self) -> str:
        """Ten letters with the first capitalised, three digits and one symbol."""
        fake = self.get_faker()
        letters = fake.lexify("??????????", letters=string.ascii_letters)
        return (letters[0].upper() + letters[1:]
                + fake.numerify("###")
                + self.rng.choice(PASSWORD_SYMBOLS))

    def generate_taxvat(self, locale: Optional[str]) -> str:
        taxvat_format = TAXVAT_FORMATS.get(locale, TAXVAT_FORMATS["default"])
        return fill_digits(taxvat_format, self.rng)

    def validate_specific(self, config: GeneratorConfig) -> List[str]:
        errors = []

        try:
            CustomerOptions.from_config(config)
        except InvalidOptionsError as e:
            errors.extend(e.errors)

        try:
            overrides = CustomerOverrides.parse(config.attributes)
        except InvalidOptionsError as e:
            errors.extend(e.errors)
            return errors

        if overrides.email and not is_valid_email(overrides.email):
            errors.append("Invalid email format")

        if overrides.group_id is not None:
            try:
                self.platform.get_customer_group(overrides.group_id)
            except PlatformError:
                errors.append(f"Invalid customer group ID: {overrides.group_id}")

        return errors
