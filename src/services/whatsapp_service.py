"""
WhatsApp order message builder and order backend payload formatting
"""
import json
import logging
from typing import Any, Dict, List
from urllib.parse import quote

from config.settings import WHATSAPP_BASE_URL, DINE_IN_FALLBACK_LOCATION
from models.order_models import BuiltOrder, OrderDetails, OrderType, Restaurant
from services.utility_service import UtilityService

logger = logging.getLogger(__name__)

SEPARATOR = "--------------------------------"

# Characters encodeURIComponent leaves untouched
URI_COMPONENT_SAFE = "-_.!~*'()"

CLOSING_LINES = {
    OrderType.TAKEAWAY: "Please confirm pickup time.",
    OrderType.DELIVERY: "Please confirm delivery time.",
}


class OrderMessageBuilder:
    """Builds the order text and wa.me deep link. No I/O, no mutation of inputs."""

    def __init__(self, base_url: str = WHATSAPP_BASE_URL, dine_in_fallback: str = DINE_IN_FALLBACK_LOCATION):
        self.base_url = base_url.rstrip("/")
        self.dine_in_fallback = dine_in_fallback

    def dine_in_location(self, details: OrderDetails) -> str:
        return UtilityService.clean_text(details.table_number) or self.dine_in_fallback

    def build_message(self, restaurant: Restaurant, details: OrderDetails) -> str:
        lines = [
            f"*New Order - {restaurant.name}*",
            SEPARATOR,
            f"Type: *{details.order_type.label}*",
        ]

        if details.order_type == OrderType.DINE_IN:
            lines.append(f"Location: *{self.dine_in_location(details)}*")

        lines.append(f"Name: *{details.customer_name}*")

        phone = UtilityService.clean_text(details.phone)
        if phone:
            lines.append(f"Phone: {phone}")

        address = UtilityService.clean_text(details.address)
        if details.order_type == OrderType.DELIVERY and address:
            lines.append("Address:")
            lines.append(address)

        lines.append(SEPARATOR)
        lines.append("Order Details:")
        for item in details.items:
            variant_str = f" ({item.variant})" if item.variant else ""
            lines.append(f"{item.quantity} x {item.name}{variant_str} = {UtilityService.format_price(item.line_total)}")

        lines.append(SEPARATOR)
        lines.append(f"*Estimated Amount: {UtilityService.format_price(details.total)}*")
        lines.append(SEPARATOR)

        closing = CLOSING_LINES.get(details.order_type)
        if closing:
            lines.append(closing)

        return "\n".join(lines) + "\n"

    def build_link(self, whatsapp_number: str, message: str) -> str:
        return f"{self.base_url}/{whatsapp_number}?text={quote(message, safe=URI_COMPONENT_SAFE)}"

    def build_order(self, restaurant: Restaurant, details: OrderDetails) -> BuiltOrder:
        message = self.build_message(restaurant, details)
        return BuiltOrder(display_text=message, deep_link_url=self.build_link(restaurant.whatsapp_number, message))

    def build_order_payload(self, restaurant: Restaurant, details: OrderDetails) -> Dict[str, Any]:
        """
        Payload for the order dashboard backend.

        Items are serialized one JSON string per element; the dashboard
        parses them back individually (see parse_order_items).
        """
        payload = {
            "restaurantId": restaurant.slug,
            "orderType": details.order_type.value,
            "customerName": details.customer_name,
            "items": [json.dumps(item.to_dict(), ensure_ascii=False) for item in details.items],
            "total": details.total,
        }

        phone = UtilityService.clean_text(details.phone)
        if phone:
            payload["customerPhone"] = phone

        if details.order_type == OrderType.DINE_IN:
            payload["dineInLocation"] = self.dine_in_location(details)

        if details.order_type == OrderType.DELIVERY:
            area = UtilityService.clean_text(details.delivery_area)
            address = UtilityService.clean_text(details.address)
            if area:
                payload["deliveryArea"] = area
            if address:
                payload["deliveryAddress"] = address

        return payload


def parse_order_items(items: List[Any]) -> List[Dict[str, Any]]:
    """Parse dashboard order items, skipping any element that is not a JSON object string"""
    parsed = []
    for raw in items or []:
        try:
            item = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping unparseable order item {raw!r}: {e}")
            continue
        if isinstance(item, dict):
            parsed.append(item)
        else:
            logger.warning(f"Skipping order item that is not an object: {raw!r}")
    return parsed
