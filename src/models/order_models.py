"""
Data models for the restaurant cart and order relay system
"""
from enum import Enum
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field

WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class OrderType(Enum):
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"

    @property
    def label(self) -> str:
        return ORDER_TYPE_LABELS[self]


ORDER_TYPE_LABELS = {
    OrderType.DINE_IN: "Dine-In",
    OrderType.TAKEAWAY: "Takeaway",
    OrderType.DELIVERY: "Delivery",
}


class AutoClearPhase(Enum):
    IDLE = "idle"
    PENDING_CLEAR = "pending_clear"
    SUPPRESSED = "suppressed"


def normalize_variant(variant: Optional[str]) -> Optional[str]:
    """Map every spelling of "no variant" to None"""
    if variant is None or variant == "":
        return None
    return variant


@dataclass
class CartLineItem:
    name: str
    price: float
    is_veg: bool
    quantity: int = 1
    variant: Optional[str] = None

    def __post_init__(self):
        self.variant = normalize_variant(self.variant)

    @property
    def identity(self) -> tuple:
        return (self.name, self.variant)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "price": self.price,
            "isVeg": self.is_veg,
            "quantity": self.quantity,
        }
        if self.variant is not None:
            data["variant"] = self.variant
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLineItem":
        """Build an item from its persisted shape, rejecting anything malformed"""
        if not isinstance(data, dict):
            raise ValueError(f"Cart item must be an object, got {type(data).__name__}")

        name = data.get("name")
        price = data.get("price")
        quantity = data.get("quantity", 1)
        variant = data.get("variant")

        if not isinstance(name, str) or not name:
            raise ValueError("Cart item is missing a name")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise ValueError(f"Invalid price for '{name}': {price!r}")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError(f"Invalid quantity for '{name}': {quantity!r}")
        if variant is not None and not isinstance(variant, str):
            raise ValueError(f"Invalid variant for '{name}': {variant!r}")

        return cls(
            name=name,
            price=price,
            is_veg=bool(data.get("isVeg", False)),
            quantity=quantity,
            variant=variant,
        )


@dataclass
class AutoClearState:
    last_order_timestamp: Optional[int] = None
    suppress_clear: bool = False

    @property
    def is_active(self) -> bool:
        return self.last_order_timestamp is not None


@dataclass
class CustomerDetails:
    name: str = ""
    phone: str = ""
    address: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "phone": self.phone, "address": self.address}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomerDetails":
        if not isinstance(data, dict):
            raise ValueError("Customer details must be an object")
        return cls(
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            address=str(data.get("address") or ""),
        )


@dataclass
class WorkingHours:
    open: str = "00:00"
    close: str = "00:00"


@dataclass
class Restaurant:
    name: str
    slug: str
    whatsapp_number: str
    description: str = ""
    address: str = ""
    google_maps_link: str = ""
    supports_dine_in: bool = True
    supports_takeaway: bool = True
    supports_delivery: bool = False
    online_ordering_enabled: bool = True
    manually_closed: bool = False
    delivery_areas: List[str] = field(default_factory=list)
    upi_id: Optional[str] = None
    timings: Dict[str, WorkingHours] = field(default_factory=dict)

    @property
    def supported_order_types(self) -> List[OrderType]:
        supported = []
        if self.supports_dine_in:
            supported.append(OrderType.DINE_IN)
        if self.supports_takeaway:
            supported.append(OrderType.TAKEAWAY)
        if self.supports_delivery:
            supported.append(OrderType.DELIVERY)
        return supported

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Restaurant":
        """Build a restaurant from a flat outlet document (monOpen, supportsDineIn, ...)"""
        timings = {
            day: WorkingHours(
                open=doc.get(f"{day}Open") or "00:00",
                close=doc.get(f"{day}Close") or "00:00",
            )
            for day in WEEKDAYS
        }
        return cls(
            name=doc.get("name", ""),
            slug=doc.get("slug", ""),
            whatsapp_number=str(doc.get("whatsappNumber", "")),
            description=doc.get("description", ""),
            address=doc.get("address", ""),
            google_maps_link=doc.get("googleMapsLink", ""),
            supports_dine_in=bool(doc.get("supportsDineIn", False)),
            supports_takeaway=bool(doc.get("supportsTakeaway", False)),
            supports_delivery=bool(doc.get("supportsDelivery", False)),
            online_ordering_enabled=bool(doc.get("onlineOrderingEnabled", True)),
            manually_closed=bool(doc.get("manuallyClosed", False)),
            delivery_areas=list(doc.get("deliveryAreas") or []),
            upi_id=doc.get("upiId") or None,
            timings=timings,
        )


@dataclass
class Variant:
    label: str
    price: float


@dataclass
class MenuItem:
    name: str
    is_veg: bool
    is_sold_out: bool = False
    description: Optional[str] = None
    price: Optional[float] = None
    variants: List[Variant] = field(default_factory=list)


@dataclass
class MenuCategory:
    category: str
    items: List[MenuItem] = field(default_factory=list)


@dataclass
class OrderDetails:
    customer_name: str
    order_type: OrderType
    items: List[CartLineItem]
    total: float
    phone: Optional[str] = None
    address: Optional[str] = None
    table_number: Optional[str] = None
    delivery_area: Optional[str] = None


@dataclass
class BuiltOrder:
    display_text: str
    deep_link_url: str
