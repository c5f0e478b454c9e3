"""
Pydantic models for the DirectOrder cart API
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

OrderTypeValue = Literal["dine-in", "takeaway", "delivery"]


# Request Models
class SessionRequest(BaseModel):
    session_id: Optional[str] = Field(None, description="Customer session ID")


class AddItemRequest(SessionRequest):
    name: str = Field(..., min_length=1, description="Menu item name")
    variant: Optional[str] = Field(None, description="Variant label, e.g. Half or Full")
    quantity: int = Field(1, ge=1, description="Quantity to add")


class UpdateQuantityRequest(SessionRequest):
    name: str = Field(..., description="Name of the item to update")
    variant: Optional[str] = Field(None, description="Variant of the item to update")
    quantity: int = Field(..., description="New quantity; zero or less removes the item")


class RemoveItemRequest(SessionRequest):
    name: str = Field(..., description="Name of the item to remove")
    variant: Optional[str] = Field(None, description="Variant of the item to remove")


class LocationRequest(SessionRequest):
    loc: str = Field(..., min_length=1, description="Location from the QR code link, e.g. table_4")


class CustomerInfoRequest(SessionRequest):
    name: str = Field("", description="Customer name")
    phone: str = Field("", description="Customer phone number")
    address: str = Field("", description="Delivery address")


class CheckoutRequest(SessionRequest):
    order_type: OrderTypeValue = Field(..., description="dine-in, takeaway or delivery")
    table_number: Optional[str] = Field(None, description="Dine-in table / room / location")
    delivery_area: Optional[str] = Field(None, description="Delivery area from the restaurant's list")
    customer_name: Optional[str] = Field(None, description="Overrides the saved customer name")
    phone: Optional[str] = Field(None, description="Overrides the saved phone number")
    address: Optional[str] = Field(None, description="Overrides the saved address")


# Response Models
class HealthResponse(BaseModel):
    status: str
    timestamp: str


class CartItemResponse(BaseModel):
    name: str
    variant: Optional[str]
    price: float
    is_veg: bool
    quantity: int
    line_total: float


class AutoClearResponse(BaseModel):
    phase: str
    last_order_time: Optional[int]
    dont_clear: bool
    remaining_ms: int


class CartResponse(BaseModel):
    session_id: str
    restaurant_slug: str
    cart_items: List[CartItemResponse]
    total: float
    cart_summary: str
    auto_clear: AutoClearResponse


class CustomerInfoResponse(BaseModel):
    session_id: str
    name: str
    phone: str
    address: str


class CheckoutResponse(BaseModel):
    session_id: str
    message: str
    whatsapp_url: str
    total: float
    backend_submitted: bool
    auto_clear: AutoClearResponse


class FocusResponse(BaseModel):
    session_id: str
    cleared: List[str]


class RestaurantResponse(BaseModel):
    restaurant: Dict[str, Any]
    status: str
    ordering_disabled: bool
    menu: List[Dict[str, Any]]
