"""
Base class shared by the entity generators.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from faker import Faker

from ..exceptions import PlatformError
from ..platform.base import HostPlatform
from ..providers import FakerPool
from ..schemas import GeneratorConfig, GeneratorResult
from ..settings import SuiteSettings

logger = logging.getLogger(__name__)


class AbstractGenerator(ABC):
    """
    Common plumbing for generators.

    Subclasses set TYPE and implement generate(); they can extend validate()
    through validate_specific().

    Args:
        platform: Host platform the entities are created in
        settings: Suite settings, read from the environment when omitted
        rng: Random source for every probabilistic decision
        fakers: Faker pool, seeded from rng when omitted
    """

    TYPE = "entity"

    def __init__(
        self,
        platform: HostPlatform,
        settings: Optional[SuiteSettings] = None,
        rng: Optional[random.Random] = None,
        fakers: Optional[FakerPool] = None,
    ):
        self.platform = platform
        self.settings = settings or SuiteSettings()
        self.rng = rng or random.Random()
        self.fakers = fakers or FakerPool(self.rng)

    @abstractmethod
    def generate(self, config: GeneratorConfig) -> GeneratorResult:
        pass

    def get_type(self) -> str:
        return self.TYPE

    def generate_batch(self, config: GeneratorConfig, count: int) -> List[GeneratorResult]:
        """
        Call generate() count times; an exception becomes a failed result.

        Args:
            config: Configuration passed to every call
            count: Number of entities to generate

        Returns:
            One result per attempt
        """
        results = []
        for i in range(count):
            try:
                results.append(self.generate(config))
            except Exception as e:
                logger.error(f"Error generating {self.TYPE} {i + 1} of {count}: {e}", exc_info=True)
                results.append(self.create_result(False, errors=[str(e)]))
        return results

    def validate(self, config: GeneratorConfig) -> List[str]:
        """
        Check a configuration before generating anything.

        Returns:
            List of error messages, empty when the configuration is usable
        """
        errors = []

        if config.store_id is not None:
            try:
                self.platform.get_store(config.store_id)
            except PlatformError:
                errors.append(f"Invalid store ID: {config.store_id}")

        if config.website_id is not None:
            try:
                self.platform.get_website(config.website_id)
            except PlatformError:
                errors.append(f"Invalid website ID: {config.website_id}")

        return errors + self.validate_specific(config)

    def validate_specific(self, config: GeneratorConfig) -> List[str]:
        return []

    def get_faker(self, locale: Optional[str] = None) -> Faker:
        return self.fakers.get(locale)

    def chance(self, percent: int) -> bool:
        """Bernoulli draw: True with the given probability in percent."""
        return self.rng.randint(1, 100) <= percent

    def create_result(
        self,
        success: bool,
        entity: Any = None,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
    ) -> GeneratorResult:
        return GeneratorResult(
            type=self.TYPE,
            success=success,
            entity=entity,
            entity_id=getattr(entity, "id", None),
            errors=list(errors or []),
            warnings=list(warnings or []),
        )

    def log(self, message: str, **context) -> None:
        context["generator"] = self.TYPE
        details = ", ".join(f"{key}={value}" for key, value in context.items())
        logger.info(f"{message} ({details})")
