"""
Utility service for common operations
"""
import logging
import re
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

CURRENCY_SYMBOL = "₹"


class UtilityService:
    @staticmethod
    def format_amount(amount: float) -> str:
        """Format a whole-unit amount without a trailing .0"""
        if isinstance(amount, float) and amount.is_integer():
            return str(int(amount))
        return str(amount)

    @staticmethod
    def format_price(amount: float) -> str:
        """Format price for display"""
        return f"{CURRENCY_SYMBOL}{UtilityService.format_amount(amount)}"

    @staticmethod
    def format_location_label(loc: str) -> str:
        """Turn a QR location slug into a label: "table_1" -> "Table 1" """
        if not loc:
            return ""
        label = loc.replace("_", " ")
        return re.sub(r"\b\w", lambda m: m.group(0).upper(), label)

    @staticmethod
    def normalize_area(area: str) -> str:
        """Normalize a delivery area name for comparison"""
        return re.sub(r"\s+", " ", area.strip().lower())

    @staticmethod
    def clean_text(value: Optional[str]) -> Optional[str]:
        """Strip a form value, returning None when nothing is left"""
        if value is None:
            return None
        value = value.strip()
        return value or None

    @staticmethod
    def generate_session_id() -> str:
        """Generate a customer session ID"""
        return f"session_{uuid.uuid4().hex[:8]}"
