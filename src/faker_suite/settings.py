"""
Suite configuration.

Settings are read once per call from the environment (prefix ``FAKER_SUITE_``)
or a ``.env`` file, or built directly in code. Store-scoped values can be
overridden per store id through ``store_overrides``; ``for_store()`` resolves
them into a plain StoreSettings object that the generators carry around.

Example:
    FAKER_SUITE_ALLOWED_LOCALES=en_US,de_DE
    FAKER_SUITE_INVOICE_CHANCE=50
    FAKER_SUITE_METHOD_FALLBACK=force_default
"""

import logging
from typing import Annotated, Any, Dict, List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .schemas import MethodFallbackPolicy, split_csv

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_DOMAIN = "example.com"

STORE_SCOPED_FIELDS = (
    "allowed_locales",
    "default_email_domain",
    "name_prefix",
    "surname_prefix",
    "address_prefix",
    "email_prefix",
    "allowed_payment_methods",
    "allowed_shipping_methods",
)


class StoreSettings(BaseModel):
    """Configuration values resolved for a single store."""
    allowed_locales: List[str] = Field(default_factory=list)
    default_email_domain: str = DEFAULT_EMAIL_DOMAIN
    name_prefix: str = ""
    surname_prefix: str = ""
    address_prefix: str = ""
    email_prefix: str = ""
    allowed_payment_methods: List[str] = Field(default_factory=list)
    allowed_shipping_methods: List[str] = Field(default_factory=list)

    @field_validator("allowed_locales", "allowed_payment_methods", "allowed_shipping_methods", mode="before")
    @classmethod
    def _split_lists(cls, value):
        return split_csv(value)

    @field_validator("default_email_domain", mode="before")
    @classmethod
    def _domain_fallback(cls, value):
        return value or DEFAULT_EMAIL_DOMAIN

    def is_locale_allowed(self, locale: str) -> bool:
        """An empty allow-list permits every locale."""
        return not self.allowed_locales or locale in self.allowed_locales


class SuiteSettings(BaseSettings):
    """Global faker suite settings."""

    model_config = SettingsConfigDict(
        env_prefix="FAKER_SUITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = True

    # Store scope defaults
    allowed_locales: Annotated[List[str], NoDecode] = Field(default_factory=list)
    default_email_domain: str = DEFAULT_EMAIL_DOMAIN
    name_prefix: str = ""
    surname_prefix: str = ""
    address_prefix: str = ""
    email_prefix: str = ""
    allowed_payment_methods: Annotated[List[str], NoDecode] = Field(default_factory=list)
    allowed_shipping_methods: Annotated[List[str], NoDecode] = Field(default_factory=list)

    # Post-creation chances, percent
    invoice_chance: int = Field(0, ge=0, le=100)
    shipment_chance: int = Field(0, ge=0, le=100)
    creditmemo_chance: int = Field(0, ge=0, le=100)

    # Scheduled generation
    cron_enabled: bool = False
    cron_expression: str = "0 2 * * *"
    cron_customer_count: int = Field(10, ge=0)
    cron_order_count: int = Field(10, ge=0)

    method_fallback: MethodFallbackPolicy = MethodFallbackPolicy.STRICT

    # store_id -> {field: value} for the store scoped fields
    store_overrides: Dict[int, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("allowed_locales", "allowed_payment_methods", "allowed_shipping_methods", mode="before")
    @classmethod
    def _split_lists(cls, value):
        return split_csv(value)

    @field_validator("store_overrides")
    @classmethod
    def _check_override_keys(cls, value):
        for store_id, overrides in value.items():
            unknown = sorted(set(overrides) - set(STORE_SCOPED_FIELDS))
            if unknown:
                raise ValueError(f"store {store_id}: unknown store settings {', '.join(unknown)}")
        return value

    def for_store(self, store_id: int = None) -> StoreSettings:
        """
        Resolve the store scoped values for a store.

        Args:
            store_id: Store id, or None for the default scope

        Returns:
            StoreSettings with the store overrides applied on top of the defaults
        """
        values = {name: getattr(self, name) for name in STORE_SCOPED_FIELDS}
        if store_id is not None and store_id in self.store_overrides:
            values.update(self.store_overrides[store_id])
            logger.debug(f"Applied store overrides for store {store_id}")
        return StoreSettings.model_validate(values)
