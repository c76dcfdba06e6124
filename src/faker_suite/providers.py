"""
Locale-aware data providers.

Wraps Faker with the extra knowledge the generators need: phone formats per
locale, postcode formats per country and regions from the host directory.
Every provider draws from an injected random.Random so that a seeded run is
reproducible end to end.
"""

import logging
import random
import re
import string
from typing import Callable, Dict, List, Optional, Union

from faker import Faker
from faker.config import AVAILABLE_LOCALES

from .platform.base import HostPlatform

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en_US"
DEFAULT_COUNTRY = "US"


class FakerPool:
    """
    One Faker instance per locale, seeded from a shared random source.

    Args:
        rng: Random source used to seed each Faker instance on first use
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._fakers: Dict[str, Faker] = {}

    @staticmethod
    def is_available(locale: str) -> bool:
        return locale in AVAILABLE_LOCALES

    def get(self, locale: Optional[str] = None) -> Faker:
        """Return the Faker for a locale, falling back to en_US for unknown locales."""
        locale = locale or DEFAULT_LOCALE
        if not self.is_available(locale):
            logger.warning(f"Locale {locale} is not supported by Faker, using {DEFAULT_LOCALE}")
            locale = DEFAULT_LOCALE
        if locale not in self._fakers:
            fake = Faker(locale)
            fake.seed_instance(self.rng.randint(0, 2 ** 32 - 1))
            self._fakers[locale] = fake
        return self._fakers[locale]


def fill_digits(pattern: str, rng: random.Random) -> str:
    """Replace every ``#`` in the pattern with a random digit."""
    return re.sub("#", lambda _: str(rng.randint(0, 9)), pattern)


def country_from_locale(locale: Optional[str]) -> str:
    """de_DE -> DE, missing locale -> US."""
    if not locale:
        return DEFAULT_COUNTRY
    return locale.split("_")[-1].upper()


# =============================================================================
# PHONE NUMBERS
# =============================================================================

PHONE_FORMATS = {
    "en_US": ["###-###-####", "(###) ###-####", "### ### ####", "+1 ### ### ####"],
    "en_GB": ["#### ######", "#####-######", "+44 #### ######", "0#### ######"],
    "de_DE": ["#### #######", "####-#######", "+49 #### #######", "0#### #######"],
    "fr_FR": ["## ## ## ## ##", "+33 # ## ## ## ##", "0# ## ## ## ##"],
    "default": ["+# ### ### ####", "### ### ####"],
}


class PhoneProvider:
    """Phone numbers in locale specific formats."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def get_random(self, locale: Optional[str] = None) -> str:
        formats = PHONE_FORMATS.get(locale or "default", PHONE_FORMATS["default"])
        return fill_digits(self.rng.choice(formats), self.rng)

    def get_multiple(self, count: int, locale: Optional[str] = None) -> List[str]:
        return [self.get_random(locale) for _ in range(count)]

    def is_locale_supported(self, locale: str) -> bool:
        return locale in PHONE_FORMATS

    def get_supported_locales(self) -> List[str]:
        return list(PHONE_FORMATS)


# =============================================================================
# ADDRESSES
# =============================================================================

ADDRESS_LOCALES = [
    "en_US", "en_GB", "de_DE", "fr_FR", "es_ES",
    "it_IT", "nl_NL", "pt_BR", "ja_JP", "zh_CN",
]

GB_POSTCODE_AREAS = ["SW", "SE", "NW", "NE", "W", "E", "N", "EC", "WC"]


def _gb_postcode(rng: random.Random) -> str:
    area = rng.choice(GB_POSTCODE_AREAS)
    return (f"{area}{rng.randint(1, 20)} {rng.randint(1, 9)}"
            f"{rng.choice(string.ascii_uppercase)}{rng.choice(string.ascii_uppercase)}")


def _ca_postcode(rng: random.Random) -> str:
    first, second, third = (rng.choice(string.ascii_uppercase) for _ in range(3))
    return f"{first}{rng.randint(0, 9)}{second} {rng.randint(0, 9)}{third}{rng.randint(0, 9)}"


# country -> digit pattern or callable(rng)
POSTCODE_FORMATS: Dict[str, Union[str, Callable[[random.Random], str]]] = {
    "US": "#####",
    "GB": _gb_postcode,
    "DE": "#####",
    "FR": "#####",
    "CA": _ca_postcode,
    "AU": "####",
    "JP": "###-####",
}


class AddressProvider:
    """
    Random addresses for a locale or country.

    Args:
        platform: Host platform used for the region directory
        fakers: Shared Faker pool
        phone_provider: Provider for the telephone field
        rng: Random source for optional fields and postcodes
    """

    COMPANY_RATE = 30
    SECONDARY_LINE_RATE = 20

    def __init__(
        self,
        platform: HostPlatform,
        fakers: Optional[FakerPool] = None,
        phone_provider: Optional[PhoneProvider] = None,
        rng: Optional[random.Random] = None,
    ):
        self.platform = platform
        self.rng = rng or random.Random()
        self.fakers = fakers or FakerPool(self.rng)
        self.phone_provider = phone_provider or PhoneProvider(self.rng)

    def _chance(self, percent: int) -> bool:
        return self.rng.randint(1, 100) <= percent

    def get_random(self, locale: Optional[str] = None, country_id: Optional[str] = None) -> Dict:
        """
        Generate one address.

        Args:
            locale: Faker locale, also decides the country when country_id is not given
            country_id: Two letter country code

        Returns:
            Dict with the Address fields (without customer or default flags)
        """
        fake = self.fakers.get(locale)
        country_id = (country_id or country_from_locale(locale)).upper()

        street = [fake.street_address()]
        if self._chance(self.SECONDARY_LINE_RATE) and hasattr(fake, "secondary_address"):
            street.append(fake.secondary_address())

        region = self._random_region(country_id)

        return {
            "firstname": fake.first_name(),
            "lastname": fake.last_name(),
            "company": fake.company() if self._chance(self.COMPANY_RATE) else None,
            "street": street,
            "city": fake.city(),
            "country_id": country_id,
            "region": region.name if region else None,
            "region_id": region.id if region else None,
            "postcode": self._postcode(country_id, fake),
            "telephone": self.phone_provider.get_random(locale),
        }

    def get_multiple(self, count: int, locale: Optional[str] = None) -> List[Dict]:
        return [self.get_random(locale) for _ in range(count)]

    def is_locale_supported(self, locale: str) -> bool:
        # Faker covers every locale we hand it
        return True

    def get_supported_locales(self) -> List[str]:
        return list(ADDRESS_LOCALES)

    def _random_region(self, country_id: str):
        regions = self.platform.get_regions(country_id)
        if not regions:
            return None
        return self.rng.choice(regions)

    def _postcode(self, country_id: str, fake: Faker) -> str:
        postcode_format = POSTCODE_FORMATS.get(country_id)
        if postcode_format is None:
            return fake.postcode()
        if callable(postcode_format):
            return postcode_format(self.rng)
        return fill_digits(postcode_format, self.rng)
