"""
Form input validation for portal views.
Each validator returns an error message, or None when the input is valid.
"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class FormValidator:
    """Validators for the profile setup form."""

    @staticmethod
    def validate_email(email: Optional[str]) -> Optional[str]:
        if not email:
            return "Email is required"
        if not EMAIL_PATTERN.match(email):
            return "Please enter a valid email address"
        return None

    @staticmethod
    def validate_required(value: Optional[str], field_name: str) -> Optional[str]:
        if not value or not value.strip():
            return f"{field_name} is required"
        return None
