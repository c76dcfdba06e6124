"""
Customer and address validation.

Checks run on a generated customer right before it is handed to the host.
They return a list of human-readable messages instead of raising, so callers
can report everything that is wrong at once:
1. Required identity fields (email, names, website and store scope)
2. Email syntax
3. Date of birth format and age bounds
4. Gender code
5. Address required fields and phone number format
"""

import logging
import re
from datetime import date, datetime
from typing import Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from .schemas import Customer, Gender

logger = logging.getLogger(__name__)

DOB_FORMAT = "%Y-%m-%d"
MIN_AGE = 18
MAX_AGE = 120

PHONE_PATTERN = re.compile(r"^[0-9\s\-\(\)\+]+$")
MIN_PHONE_DIGITS = 10

ADDRESS_REQUIRED_FIELDS = {
    "firstname": "First name",
    "lastname": "Last name",
    "street": "Street address",
    "city": "City",
    "country_id": "Country",
    "telephone": "Phone number",
}


def is_valid_email(email: str) -> bool:
    """Syntax check only, no DNS lookups."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def age_on(dob: date, today: date) -> int:
    """Full years between dob and today."""
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


def is_valid_phone(phone: str) -> bool:
    digits = re.sub(r"[^0-9]", "", phone)
    return bool(PHONE_PATTERN.match(phone)) and len(digits) >= MIN_PHONE_DIGITS


class CustomerValidator:
    """
    Validates customers and address data before persistence.

    Usage:
        errors = CustomerValidator().validate(customer)
        if errors:
            raise CustomerValidationError(errors)
    """

    def validate(self, customer: Customer, today: Optional[date] = None) -> List[str]:
        """
        Validate a customer.

        Args:
            customer: Customer to check
            today: Reference date for the age check, defaults to today

        Returns:
            List of error messages, empty when the customer is valid
        """
        errors = []

        if not customer.email:
            errors.append("Email is required")
        elif not is_valid_email(customer.email):
            errors.append("Invalid email format")

        if not customer.firstname:
            errors.append("First name is required")

        if not customer.lastname:
            errors.append("Last name is required")

        if not customer.website_id:
            errors.append("Website ID is required")

        if customer.store_id is None:
            errors.append("Store ID is required")

        if customer.dob:
            errors.extend(self._validate_dob(customer.dob, today or date.today()))

        if customer.gender and customer.gender not in {g.value for g in Gender}:
            errors.append("Invalid gender value")

        if errors:
            logger.debug(f"Customer {customer.email or '<no email>'} failed validation: {errors}")
        return errors

    def _validate_dob(self, dob: str, today: date) -> List[str]:
        try:
            parsed = datetime.strptime(dob, DOB_FORMAT).date()
        except ValueError:
            return ["Invalid date of birth format. Expected: YYYY-MM-DD"]

        # strptime accepts unpadded values like 1990-1-5
        if parsed.strftime(DOB_FORMAT) != dob:
            return ["Invalid date of birth format. Expected: YYYY-MM-DD"]

        errors = []
        age = age_on(parsed, today)
        if age < MIN_AGE:
            errors.append("Customer must be at least 18 years old")
        if age > MAX_AGE:
            errors.append("Invalid date of birth")
        return errors

    def validate_address(self, address_data: Dict) -> List[str]:
        """
        Validate raw address data.

        Args:
            address_data: Dict with the Address fields

        Returns:
            List of error messages, empty when the address is valid
        """
        errors = [
            f"{label} is required"
            for field, label in ADDRESS_REQUIRED_FIELDS.items()
            if not address_data.get(field)
        ]

        telephone = address_data.get("telephone")
        if telephone and not is_valid_phone(telephone):
            errors.append("Invalid phone number format")

        return errors
