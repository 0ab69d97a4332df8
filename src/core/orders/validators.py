"""
Validators for order contact fields.

Each validator returns (is_valid, normalized_value, error_key). Error keys
index the localized texts in src.core.orders.messages.PROMPTS.
"""

import re
from typing import Optional, Tuple

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from src.config import settings

ValidationResult = Tuple[bool, Optional[str], Optional[str]]


class NameValidator:
    """Validate customer name."""

    MAX_LENGTH = 120

    @classmethod
    def validate(cls, name: str) -> ValidationResult:
        """
        Validate customer name.

        Returns:
            Tuple of (is_valid, normalized_name, error_key)
        """
        name = " ".join(name.split())

        if not name:
            return False, None, "name_empty"

        if len(name) > cls.MAX_LENGTH:
            return False, None, "name_too_long"

        if not re.search(r"[^\W\d_]", name):
            return False, None, "name_letters"

        return True, name, None


class PhoneValidator:
    """Validate phone numbers and normalize them to E.164."""

    MAX_LENGTH = 32

    PHONE_PATTERN = re.compile(r"^\+?[\d\s\-().]+$")

    @classmethod
    def validate(cls, phone: str, region: Optional[str] = None) -> ValidationResult:
        """
        Validate and normalize phone number.

        Numbers without a country code are read in `region`
        (settings.default_region by default).

        Returns:
            Tuple of (is_valid, e164_phone, error_key)
        """
        phone = phone.strip()

        if not phone:
            return False, None, "phone_empty"

        if len(phone) > cls.MAX_LENGTH or not cls.PHONE_PATTERN.match(phone):
            return False, None, "phone_invalid"

        try:
            parsed = phonenumbers.parse(phone, region or settings.default_region)
        except NumberParseException:
            return False, None, "phone_invalid"

        if not phonenumbers.is_valid_number(parsed):
            return False, None, "phone_invalid"

        return True, phonenumbers.format_number(parsed, PhoneNumberFormat.E164), None


class EmailValidator:
    """Validate email address."""

    MAX_LENGTH = 254
    EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$")

    @classmethod
    def validate(cls, email: str) -> ValidationResult:
        email = email.strip()

        if not email:
            return False, None, "email_empty"

        if len(email) > cls.MAX_LENGTH or not cls.EMAIL_PATTERN.match(email):
            return False, None, "email_invalid"

        return True, email.lower(), None


class AddressValidator:
    """Validate delivery address."""

    MIN_LENGTH = 3
    MAX_LENGTH = 300

    @classmethod
    def validate(cls, address: str) -> ValidationResult:
        """
        Validate delivery address.

        Returns:
            Tuple of (is_valid, normalized_address, error_key)
        """
        address = " ".join(address.split())

        if not address:
            return False, None, "address_empty"

        if len(address) < cls.MIN_LENGTH:
            return False, None, "address_too_short"

        if len(address) > cls.MAX_LENGTH:
            return False, None, "address_too_long"

        return True, address, None


class ItemValidator:
    """Validate the free-text item of interest."""

    MAX_LENGTH = 200

    @classmethod
    def validate(cls, item: str) -> ValidationResult:
        item = " ".join(item.split())
        if not item:
            return False, None, "item_empty"
        return True, item[: cls.MAX_LENGTH], None


def parse_contact_triple(text: str) -> Optional[Tuple[str, str, str]]:
    """
    Parse "name, phone, address" submitted in one message.

    The address may itself contain commas. Returns None unless all three
    parts are valid.
    """
    parts = [part.strip() for part in text.split(",", 2)]
    if len(parts) != 3:
        return None

    name_ok, name, _ = NameValidator.validate(parts[0])
    phone_ok, phone, _ = PhoneValidator.validate(parts[1])
    address_ok, address, _ = AddressValidator.validate(parts[2])

    if not (name_ok and phone_ok and address_ok):
        return None
    return name, phone, address
