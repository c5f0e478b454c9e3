"""
Menu service for outlet and menu data, loaded from the menu API or a local JSON file
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from config.settings import MENU_API_URL, MENU_DATA_PATH, ORDER_BACKEND_HEADERS
from models.order_models import CartLineItem, MenuCategory, MenuItem, Restaurant, Variant

logger = logging.getLogger(__name__)


class MenuService:
    def __init__(self):
        self.restaurants: Dict[str, Restaurant] = {}
        self.menu_rows: Dict[str, List[Dict[str, Any]]] = {}

    def load_data(self, data: Dict[str, Any]):
        """
        Load outlet and menu documents.

        Expects {"restaurants": [...], "menu_items": [...]} where each menu
        item row carries restaurantSlug, category, itemName, isVeg, price,
        variant (or null) and isSoldOut.
        """
        self.restaurants = {}
        self.menu_rows = {}

        for doc in data.get("restaurants", []):
            if not doc or not doc.get("slug"):
                continue
            restaurant = Restaurant.from_document(doc)
            self.restaurants[restaurant.slug] = restaurant

        for row in data.get("menu_items", []):
            if not row or not row.get("restaurantSlug") or not row.get("itemName"):
                continue
            self.menu_rows.setdefault(row["restaurantSlug"], []).append(row)

        logger.info(f"Menu loaded: {len(self.restaurants)} restaurants, "
                    f"{sum(len(rows) for rows in self.menu_rows.values())} menu rows")

    def load_from_file(self, path: str = MENU_DATA_PATH) -> bool:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading menu file {path}: {e}")
            return False
        self.load_data(data)
        return True

    async def fetch_menu_from_api(self, url: str = MENU_API_URL) -> bool:
        """Fetch outlets and menu from the menu API"""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, headers=ORDER_BACKEND_HEADERS) as response:
                    if response.status == 200:
                        data = await response.json()
                        if isinstance(data, dict) and isinstance(data.get("menu_items"), list):
                            self.load_data(data)
                            return True
                        logger.error("Menu API response missing menu_items")
                    else:
                        error_text = await response.text()
                        logger.error(f"Menu API request failed with status {response.status}: {error_text}")
            return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error fetching menu: {str(e)}")
            return False

    async def load(self) -> bool:
        """Load from the API when configured, falling back to the local file"""
        if MENU_API_URL and await self.fetch_menu_from_api(MENU_API_URL):
            return True
        return self.load_from_file(MENU_DATA_PATH)

    def get_restaurant(self, slug: str) -> Optional[Restaurant]:
        return self.restaurants.get(slug)

    def get_menu(self, slug: str) -> List[MenuCategory]:
        """Group flat menu rows into categories, folding variant rows into one item"""
        categories: Dict[str, Dict[str, MenuItem]] = {}

        for row in self.menu_rows.get(slug, []):
            category_items = categories.setdefault(row.get("category") or "Other", {})
            name = row["itemName"]

            item = category_items.get(name)
            if item is None:
                item = MenuItem(
                    name=name,
                    is_veg=bool(row.get("isVeg", False)),
                    is_sold_out=bool(row.get("isSoldOut", False)),
                    description=row.get("description"),
                )
                category_items[name] = item

            if row.get("variant"):
                item.variants.append(Variant(label=row["variant"], price=row.get("price", 0)))
            else:
                item.price = row.get("price", 0)

        return [
            MenuCategory(category=category, items=list(items.values()))
            for category, items in categories.items()
        ]

    def find_menu_item(self, slug: str, item_name: str) -> Optional[MenuItem]:
        """Find menu item by exact name (case-insensitive)"""
        item_name_lower = item_name.strip().lower()
        for category in self.get_menu(slug):
            for item in category.items:
                if item.name.lower() == item_name_lower:
                    return item
        return None

    def build_cart_item(self, slug: str, item_name: str, variant: Optional[str] = None,
                        quantity: int = 1) -> Optional[CartLineItem]:
        """Price a menu selection as a cart line; None when the item or variant is unknown"""
        item = self.find_menu_item(slug, item_name)
        if not item:
            return None

        if variant:
            for v in item.variants:
                if v.label.lower() == variant.strip().lower():
                    return CartLineItem(name=item.name, price=v.price, is_veg=item.is_veg,
                                        quantity=quantity, variant=v.label)
            return None

        if item.price is None:
            # Only sold in variants; one must be chosen
            return None

        return CartLineItem(name=item.name, price=item.price, is_veg=item.is_veg, quantity=quantity)
