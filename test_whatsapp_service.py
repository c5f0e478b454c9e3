"""
Tests for the WhatsApp order message, deep link and backend payload
"""
import json
import re
from urllib.parse import unquote

import pytest

from models.order_models import CartLineItem, OrderDetails, OrderType, Restaurant
from services.cart_service import CartService
from services.whatsapp_service import OrderMessageBuilder, parse_order_items, SEPARATOR


@pytest.fixture
def restaurant():
    return Restaurant(name="Green Leaf Cafe", slug="green-leaf-cafe", whatsapp_number="919876543210",
                      supports_delivery=True, delivery_areas=["Model Town"])


@pytest.fixture
def builder():
    return OrderMessageBuilder(base_url="https://wa.me", dine_in_fallback="Will inform on arrival")


@pytest.fixture
def items():
    return [
        CartLineItem(name="Paneer Tikka", price=160, is_veg=True, quantity=2, variant="Half"),
        CartLineItem(name="Butter Naan", price=45, is_veg=True, quantity=3),
    ]


def details(order_type, items, **kwargs):
    return OrderDetails(customer_name=kwargs.pop("customer_name", "Asha"), order_type=order_type,
                        items=items, total=CartService.get_total(items), **kwargs)


class TestBuildMessage:
    def test_dine_in_message(self, builder, restaurant, items):
        message = builder.build_message(restaurant, details(OrderType.DINE_IN, items, table_number="Table 4"))

        assert message == "\n".join([
            "*New Order - Green Leaf Cafe*",
            SEPARATOR,
            "Type: *Dine-In*",
            "Location: *Table 4*",
            "Name: *Asha*",
            SEPARATOR,
            "Order Details:",
            "2 x Paneer Tikka (Half) = ₹320",
            "3 x Butter Naan = ₹135",
            SEPARATOR,
            "*Estimated Amount: ₹455*",
            SEPARATOR,
        ]) + "\n"

    @pytest.mark.parametrize("table_number", [None, "", "   "])
    def test_dine_in_without_table_uses_fallback(self, builder, restaurant, items, table_number):
        message = builder.build_message(restaurant, details(OrderType.DINE_IN, items, table_number=table_number))

        assert "Location: *Will inform on arrival*" in message

    def test_delivery_message(self, builder, restaurant, items):
        message = builder.build_message(restaurant, details(
            OrderType.DELIVERY, items, phone="9812345678", address="12 Model Town\nNear park",
            delivery_area="Model Town",
        ))

        assert message == "\n".join([
            "*New Order - Green Leaf Cafe*",
            SEPARATOR,
            "Type: *Delivery*",
            "Name: *Asha*",
            "Phone: 9812345678",
            "Address:",
            "12 Model Town\nNear park",
            SEPARATOR,
            "Order Details:",
            "2 x Paneer Tikka (Half) = ₹320",
            "3 x Butter Naan = ₹135",
            SEPARATOR,
            "*Estimated Amount: ₹455*",
            SEPARATOR,
            "Please confirm delivery time.",
        ]) + "\n"

    def test_takeaway_message(self, builder, restaurant, items):
        message = builder.build_message(restaurant, details(
            OrderType.TAKEAWAY, items, phone="9812345678", address="ignored for takeaway",
        ))

        assert "Type: *Takeaway*" in message
        assert "Location:" not in message
        assert "Address:" not in message
        assert message.endswith("Please confirm pickup time.\n")

    def test_fractional_prices_are_kept(self, builder, restaurant):
        items = [CartLineItem(name="Masala Chai", price=12.5, is_veg=True, quantity=3)]

        message = builder.build_message(restaurant, details(OrderType.TAKEAWAY, items))

        assert "3 x Masala Chai = ₹37.5" in message
        assert "*Estimated Amount: ₹37.5*" in message

    @pytest.mark.parametrize("cart", [
        [CartLineItem(name="Dal Makhani", price=200, is_veg=True)],
        [CartLineItem(name="Paneer Tikka", price=280, is_veg=True, quantity=4, variant="Full"),
         CartLineItem(name="Butter Naan", price=45, is_veg=True, quantity=7)],
        [CartLineItem(name="Masala Chai", price=12.5, is_veg=True, quantity=2),
         CartLineItem(name="Gulab Jamun", price=80, is_veg=True, quantity=1)],
    ])
    def test_message_total_matches_cart_total(self, builder, restaurant, cart):
        message = builder.build_message(restaurant, details(OrderType.DINE_IN, cart))

        match = re.search(r"\*Estimated Amount: ₹([0-9.]+)\*", message)
        assert float(match.group(1)) == CartService.get_total(cart)

    def test_inputs_are_not_mutated(self, builder, restaurant, items):
        order = details(OrderType.DINE_IN, items)
        before = [CartLineItem(**vars(item)) for item in items]

        builder.build_order(restaurant, order)

        assert order.items == before
        assert order.table_number is None


class TestBuildLink:
    def test_link_targets_restaurant_number(self, builder, restaurant, items):
        built = builder.build_order(restaurant, details(OrderType.DINE_IN, items))

        assert built.deep_link_url.startswith("https://wa.me/919876543210?text=")

    def test_text_decodes_to_message(self, builder, restaurant, items):
        built = builder.build_order(restaurant, details(OrderType.DELIVERY, items, address="1 & 2 Main St"))

        encoded = built.deep_link_url.split("?text=", 1)[1]
        assert unquote(encoded) == built.display_text

    def test_encodes_like_uri_component(self, builder):
        link = builder.build_link("91", "*A & B*\n(x) ₹5 #1/2?")

        assert link == "https://wa.me/91?text=*A%20%26%20B*%0A(x)%20%E2%82%B95%20%231%2F2%3F"

    def test_trailing_slash_in_base_url(self, restaurant, items):
        builder = OrderMessageBuilder(base_url="https://wa.me/")

        assert builder.build_link("91", "hi") == "https://wa.me/91?text=hi"


class TestOrderPayload:
    def test_dine_in_payload(self, builder, restaurant, items):
        payload = builder.build_order_payload(restaurant, details(OrderType.DINE_IN, items, phone=" "))

        assert payload == {
            "restaurantId": "green-leaf-cafe",
            "orderType": "dine-in",
            "customerName": "Asha",
            "items": [json.dumps(item.to_dict(), ensure_ascii=False) for item in items],
            "total": 455,
            "dineInLocation": "Will inform on arrival",
        }

    def test_delivery_payload(self, builder, restaurant, items):
        payload = builder.build_order_payload(restaurant, details(
            OrderType.DELIVERY, items, phone="9812345678", address="12 Model Town", delivery_area="Model Town",
        ))

        assert payload["customerPhone"] == "9812345678"
        assert payload["deliveryArea"] == "Model Town"
        assert payload["deliveryAddress"] == "12 Model Town"
        assert "dineInLocation" not in payload

    def test_items_round_trip_through_parser(self, builder, restaurant, items):
        payload = builder.build_order_payload(restaurant, details(OrderType.TAKEAWAY, items))

        parsed = parse_order_items(payload["items"])

        assert [CartLineItem.from_dict(entry) for entry in parsed] == items


def test_parse_order_items_skips_bad_entries():
    raw = [
        '{"name": "Dal Makhani", "price": 200, "quantity": 1}',
        "not json",
        None,
        "[1, 2]",
        '{"name": "Butter Naan", "price": 45, "quantity": 2}',
    ]

    assert [item["name"] for item in parse_order_items(raw)] == ["Dal Makhani", "Butter Naan"]
