"""
Tests for the pure cart operations
"""
import pytest

from models.order_models import CartLineItem
from services.cart_service import CartService


def paneer(variant="Half", price=160, quantity=1):
    return CartLineItem(name="Paneer Tikka", price=price, is_veg=True, quantity=quantity, variant=variant)


def naan(quantity=1):
    return CartLineItem(name="Butter Naan", price=45, is_veg=True, quantity=quantity)


class TestAddItem:
    def test_same_identity_merges_quantities(self):
        cart = CartService.add_item([], paneer(quantity=1))
        cart = CartService.add_item(cart, paneer(quantity=2))

        assert len(cart) == 1
        assert cart[0].quantity == 3
        assert CartService.get_total(cart) == 480

    @pytest.mark.parametrize("initial", [[], [naan()], [naan(), paneer("Full", 280)]])
    def test_merge_holds_for_any_starting_cart(self, initial):
        before = CartService.get_quantity(initial, "Paneer Tikka", "Half")

        cart = CartService.add_item(CartService.add_item(initial, paneer(quantity=2)), paneer(quantity=5))

        matching = [item for item in cart if item.identity == ("Paneer Tikka", "Half")]
        assert len(matching) == 1
        assert matching[0].quantity == before + 7

    def test_different_variants_stay_separate(self):
        cart = CartService.add_item([], paneer("Half", 160))
        cart = CartService.add_item(cart, paneer("Full", 280))

        assert [item.variant for item in cart] == ["Half", "Full"]

    def test_missing_and_present_variant_stay_separate(self):
        cart = CartService.add_item([], paneer(None, 200))
        cart = CartService.add_item(cart, paneer("Half", 160))

        assert len(cart) == 2

    def test_empty_variant_is_same_as_no_variant(self):
        cart = CartService.add_item([], paneer("", 200))
        cart = CartService.add_item(cart, paneer(None, 200))

        assert len(cart) == 1
        assert cart[0].variant is None
        assert cart[0].quantity == 2

    def test_input_cart_is_not_mutated(self):
        original = [paneer(quantity=1)]

        CartService.add_item(original, paneer(quantity=4))

        assert original[0].quantity == 1

    def test_insertion_order_preserved(self):
        cart = CartService.add_item([], naan())
        cart = CartService.add_item(cart, paneer())
        cart = CartService.add_item(cart, naan())

        assert [item.name for item in cart] == ["Butter Naan", "Paneer Tikka"]


class TestUpdateQuantity:
    def test_sets_quantity(self):
        cart = CartService.update_quantity([paneer()], "Paneer Tikka", "Half", 4)

        assert cart[0].quantity == 4

    @pytest.mark.parametrize("quantity", [0, -1, -25])
    def test_non_positive_quantity_removes_line(self, quantity):
        cart = [paneer(quantity=3), naan()]

        cart = CartService.update_quantity(cart, "Paneer Tikka", "Half", quantity)

        assert CartService.get_quantity(cart, "Paneer Tikka", "Half") == 0
        assert [item.name for item in cart] == ["Butter Naan"]

    def test_only_matching_variant_changes(self):
        cart = [paneer("Half", 160), paneer("Full", 280)]

        cart = CartService.update_quantity(cart, "Paneer Tikka", "Full", 2)

        assert CartService.get_quantity(cart, "Paneer Tikka", "Half") == 1
        assert CartService.get_quantity(cart, "Paneer Tikka", "Full") == 2

    def test_unknown_item_is_a_noop(self):
        cart = [naan()]

        assert CartService.update_quantity(cart, "Dal Makhani", None, 3) == cart


class TestRemoveAndQuery:
    def test_remove_item(self):
        cart = CartService.remove_item([paneer(), naan()], "Paneer Tikka", "Half")

        assert [item.name for item in cart] == ["Butter Naan"]

    def test_remove_matches_empty_variant(self):
        cart = CartService.remove_item([naan()], "Butter Naan", "")

        assert cart == []

    def test_total_of_empty_cart_is_zero(self):
        assert CartService.get_total([]) == 0

    def test_total_is_sum_of_line_totals(self):
        cart = [paneer(quantity=2), naan(quantity=3), paneer("Full", 280)]

        assert CartService.get_total(cart) == 160 * 2 + 45 * 3 + 280

    def test_summary(self):
        cart = [paneer(quantity=2), naan()]

        summary = CartService.get_cart_summary(cart)

        assert summary == (
            "Your cart:\n"
            "1. Paneer Tikka (Half) x2 - ₹320\n"
            "2. Butter Naan x1 - ₹45\n"
            "\nTotal: ₹365"
        )

    def test_summary_of_empty_cart(self):
        assert CartService.get_cart_summary([]) == "Your cart is empty."


class TestCartLineItem:
    def test_persisted_shape_omits_missing_variant(self):
        assert naan(2).to_dict() == {"name": "Butter Naan", "price": 45, "isVeg": True, "quantity": 2}

    def test_from_dict_reads_persisted_shape(self):
        item = CartLineItem.from_dict({"name": "Paneer Tikka", "price": 160, "isVeg": True,
                                       "quantity": 2, "variant": "Half"})

        assert item == paneer(quantity=2)

    @pytest.mark.parametrize("data", [
        {"price": 10, "quantity": 1},
        {"name": "X", "price": "10", "quantity": 1},
        {"name": "X", "price": -1, "quantity": 1},
        {"name": "X", "price": 10, "quantity": 0},
        {"name": "X", "price": 10, "quantity": 1.5},
        {"name": "X", "price": 10, "quantity": 1, "variant": 3},
        ["not", "an", "object"],
    ])
    def test_from_dict_rejects_malformed_items(self, data):
        with pytest.raises(ValueError):
            CartLineItem.from_dict(data)
