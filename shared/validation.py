"""Input validation utilities."""
import math
import re
from datetime import date

import bleach


class ValidationError(Exception):
    """Raised when input validation fails.

    ``reason`` is the short machine-readable code reported per question.
    """

    def __init__(self, message, reason='invalid'):
        super().__init__(message)
        self.reason = reason


class Validator:
    """Answer validation utilities."""

    # Pre-compiled validation patterns, as loose as the backend's own checks
    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
    PHONE_PATTERN = re.compile(r'^\+?[\d\s\-()]+$')
    ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

    @staticmethod
    def is_empty(value):
        """Emptiness as far as required checks are concerned.

        Absent, None, empty string and empty list are empty. False is an answer.
        """
        if value is None:
            return True
        if isinstance(value, str):
            return value == ''
        if isinstance(value, (list, tuple)):
            return len(value) == 0
        return False

    @staticmethod
    def validate_required(value, field_name):
        """Validate that a required answer is not empty."""
        if Validator.is_empty(value):
            raise ValidationError(f"{field_name} is required", reason='required')
        return value

    @staticmethod
    def validate_string(value, field_name):
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string", reason='invalid_type')
        return value

    @staticmethod
    def validate_email(email):
        """Validate email format."""
        if not isinstance(email, str) or not Validator.EMAIL_PATTERN.match(email.strip()):
            raise ValidationError("Invalid email address", reason='invalid_email')
        return email

    @staticmethod
    def validate_phone(phone):
        """Validate phone number format.

        Digits, spaces, dashes, brackets and a leading plus are accepted.
        """
        if not isinstance(phone, str) or not Validator.PHONE_PATTERN.match(phone.strip()):
            raise ValidationError("Invalid phone number", reason='invalid_phone')
        return phone

    @staticmethod
    def validate_number(value, field_name="value"):
        """Validate that value parses as a number and return the parsed float."""
        if isinstance(value, bool):
            raise ValidationError(f"{field_name} must be a number", reason='invalid_number')
        # float() also takes digit separators, nan and inf, none of which the form accepts
        if isinstance(value, str) and "_" in value:
            raise ValidationError(f"{field_name} must be a number", reason='invalid_number')
        try:
            number = float(value.strip()) if isinstance(value, str) else float(value)
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a number", reason='invalid_number')
        if not math.isfinite(number):
            raise ValidationError(f"{field_name} must be a number", reason='invalid_number')
        return number

    @staticmethod
    def validate_iso_date(value):
        """Validate a YYYY-MM-DD date string."""
        if not isinstance(value, str) or not Validator.ISO_DATE_PATTERN.match(value):
            raise ValidationError("Date must be YYYY-MM-DD", reason='invalid_date')
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValidationError("Date must be a real calendar date", reason='invalid_date')

    @staticmethod
    def validate_choice(value, field_name, valid_choices):
        """Validate that value is in list of valid choices."""
        if value not in valid_choices:
            raise ValidationError(
                f"{field_name} must be one of: {', '.join(str(c) for c in valid_choices)}",
                reason='invalid_option'
            )
        return value

    @staticmethod
    def sanitize_html(text):
        """Secure HTML sanitization using bleach library.

        Template help text and hints come from the server and from TradieConnect
        and may carry markup.
        """
        if not text:
            return text

        # Plain text needs no parsing
        if '<' not in text and '>' not in text and '&' not in text:
            return text

        allowed_tags = ['p', 'br', 'strong', 'em', 'u', 'ul', 'ol', 'li']
        return bleach.clean(text, tags=allowed_tags, attributes={}, strip=True)
