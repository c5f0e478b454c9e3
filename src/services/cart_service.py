"""
Cart service: pure operations over a list of cart line items
"""
import logging
from dataclasses import replace
from typing import List, Optional

from models.order_models import CartLineItem, normalize_variant
from services.utility_service import UtilityService

logger = logging.getLogger(__name__)

Cart = List[CartLineItem]


class CartService:
    """
    Every operation returns a new cart and leaves its input untouched.
    Line items are identified by (name, variant); a missing variant and
    an empty-string variant are the same identity.
    """

    @staticmethod
    def _matches(item: CartLineItem, name: str, variant: Optional[str]) -> bool:
        return item.identity == (name, normalize_variant(variant))

    @staticmethod
    def add_item(cart: Cart, item: CartLineItem) -> Cart:
        """Add item to cart, merging quantities with an existing line of the same identity"""
        new_cart = []
        merged = False
        for existing in cart:
            if existing.identity == item.identity:
                new_cart.append(replace(existing, quantity=existing.quantity + item.quantity))
                merged = True
            else:
                new_cart.append(existing)

        if not merged:
            new_cart.append(replace(item))
        return new_cart

    @staticmethod
    def update_quantity(cart: Cart, name: str, variant: Optional[str], new_quantity: int) -> Cart:
        """Set quantity of a line; zero or below removes it"""
        if new_quantity <= 0:
            return CartService.remove_item(cart, name, variant)

        return [
            replace(item, quantity=new_quantity) if CartService._matches(item, name, variant) else item
            for item in cart
        ]

    @staticmethod
    def remove_item(cart: Cart, name: str, variant: Optional[str] = None) -> Cart:
        return [item for item in cart if not CartService._matches(item, name, variant)]

    @staticmethod
    def get_quantity(cart: Cart, name: str, variant: Optional[str] = None) -> int:
        for item in cart:
            if CartService._matches(item, name, variant):
                return item.quantity
        return 0

    @staticmethod
    def get_total(cart: Cart) -> float:
        """Calculate total price of cart"""
        total = 0
        for item in cart:
            total += item.price * item.quantity
        return total

    @staticmethod
    def get_cart_summary(cart: Cart) -> str:
        """Get cart summary as string"""
        if not cart:
            return "Your cart is empty."

        cart_text = "Your cart:\n"
        for i, item in enumerate(cart, 1):
            variant_str = f" ({item.variant})" if item.variant else ""
            cart_text += f"{i}. {item.name}{variant_str} x{item.quantity} - {UtilityService.format_price(item.line_total)}\n"

        cart_text += f"\nTotal: {UtilityService.format_price(CartService.get_total(cart))}"
        return cart_text
