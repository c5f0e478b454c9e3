"""
FastAPI DirectOrder cart service - Main Application
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

# Add src to Python path
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from config.settings import AUTO_CLEAR_SWEEP_SECONDS, HOST, PORT, LOG_LEVEL
from models.order_models import CustomerDetails, OrderDetails, OrderType, Restaurant
from services.auto_clear_service import schedule_sweep
from services.cart_service import CartService
from services.cart_store import MultiTenantCartStore, ScopedCart
from services.menu_service import MenuService
from services.order_backend_service import OrderBackendService
from services.restaurant_status import get_restaurant_status, is_ordering_disabled
from services.session_service import CartSessionRegistry
from services.utility_service import UtilityService
from services.whatsapp_service import OrderMessageBuilder
from api_models import (
    AddItemRequest,
    AutoClearResponse,
    CartItemResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    CustomerInfoRequest,
    CustomerInfoResponse,
    FocusResponse,
    HealthResponse,
    LocationRequest,
    RemoveItemRequest,
    RestaurantResponse,
    SessionRequest,
    UpdateQuantityRequest,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

router = APIRouter()


# Dependencies
def get_registry(request: Request) -> CartSessionRegistry:
    return request.app.state.registry


def get_menu_service(request: Request) -> MenuService:
    return request.app.state.menu_service


def get_order_backend(request: Request) -> OrderBackendService:
    return request.app.state.order_backend


def get_message_builder(request: Request) -> OrderMessageBuilder:
    return request.app.state.message_builder


def open_session(registry: CartSessionRegistry, session_id: Optional[str]) -> Tuple[str, MultiTenantCartStore]:
    try:
        return registry.get_or_create(session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def require_restaurant(menu_service: MenuService, slug: str) -> Restaurant:
    restaurant = menu_service.get_restaurant(slug)
    if not restaurant:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


def auto_clear_response(cart: ScopedCart) -> AutoClearResponse:
    return AutoClearResponse(
        phase=cart.auto_clear_phase.value,
        last_order_time=cart.last_order_time,
        dont_clear=cart.dont_clear,
        remaining_ms=cart.remaining_ms(),
    )


def cart_response(session_id: str, cart: ScopedCart) -> CartResponse:
    items = cart.cart_items
    return CartResponse(
        session_id=session_id,
        restaurant_slug=cart.tenant,
        cart_items=[
            CartItemResponse(
                name=item.name,
                variant=item.variant,
                price=item.price,
                is_veg=item.is_veg,
                quantity=item.quantity,
                line_total=item.line_total,
            ) for item in items
        ],
        total=CartService.get_total(items),
        cart_summary=CartService.get_cart_summary(items),
        auto_clear=auto_clear_response(cart),
    )


def validate_order_form(restaurant: Restaurant, order_type: OrderType, customer: CustomerDetails,
                        delivery_area: Optional[str]) -> Dict[str, str]:
    """Required-field checks for the checkout form, keyed by field name"""
    errors = {}

    if not customer.name.strip():
        errors["name"] = "Please enter your name"

    if order_type in (OrderType.TAKEAWAY, OrderType.DELIVERY) and not customer.phone.strip():
        errors["phone"] = "Phone number is required"

    if order_type == OrderType.DELIVERY and not customer.address.strip():
        errors["address"] = "Delivery address is required"

    if order_type == OrderType.DELIVERY and restaurant.delivery_areas:
        known_areas = {UtilityService.normalize_area(area) for area in restaurant.delivery_areas}
        if not delivery_area or UtilityService.normalize_area(delivery_area) not in known_areas:
            errors["delivery_area"] = "Please select a delivery area"

    return errors


# Health check endpoint
@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="healthy", timestamp=datetime.now().isoformat())


# Restaurant endpoints
@router.get("/api/restaurants/{slug}", response_model=RestaurantResponse)
async def get_restaurant(slug: str, menu_service: MenuService = Depends(get_menu_service)):
    """Get outlet details, open status and the grouped menu"""
    restaurant = require_restaurant(menu_service, slug)
    return RestaurantResponse(
        restaurant=asdict(restaurant),
        status=get_restaurant_status(restaurant).value,
        ordering_disabled=is_ordering_disabled(restaurant),
        menu=[asdict(category) for category in menu_service.get_menu(slug)],
    )


# Cart endpoints
@router.get("/api/cart/{slug}", response_model=CartResponse)
async def get_cart(slug: str, session_id: Optional[str] = None,
                   registry: CartSessionRegistry = Depends(get_registry),
                   menu_service: MenuService = Depends(get_menu_service)):
    """Get current cart contents and auto-clear countdown"""
    require_restaurant(menu_service, slug)
    session_id, store = open_session(registry, session_id)
    return cart_response(session_id, store.scoped(slug))


@router.post("/api/cart/{slug}/items", response_model=CartResponse)
async def add_item(slug: str, request: AddItemRequest,
                   registry: CartSessionRegistry = Depends(get_registry),
                   menu_service: MenuService = Depends(get_menu_service)):
    """Add a menu item to the cart, priced from the menu"""
    restaurant = require_restaurant(menu_service, slug)
    if is_ordering_disabled(restaurant):
        raise HTTPException(status_code=403, detail="Restaurant is not accepting orders")

    menu_item = menu_service.find_menu_item(slug, request.name)
    if not menu_item:
        raise HTTPException(status_code=404, detail="Item not found")
    if menu_item.is_sold_out:
        raise HTTPException(status_code=409, detail=f"{menu_item.name} is sold out")

    item = menu_service.build_cart_item(slug, request.name, request.variant, request.quantity)
    if not item:
        raise HTTPException(status_code=404, detail="Variant not found")

    session_id, store = open_session(registry, request.session_id)
    try:
        cart = store.scoped(slug)
        cart.add_to_cart(item)
        return cart_response(session_id, cart)
    except Exception as e:
        logger.error(f"Error adding item to cart: {e}")
        raise HTTPException(status_code=500, detail="Failed to add item to cart")


@router.put("/api/cart/{slug}/items", response_model=CartResponse)
async def update_item_quantity(slug: str, request: UpdateQuantityRequest,
                               registry: CartSessionRegistry = Depends(get_registry),
                               menu_service: MenuService = Depends(get_menu_service)):
    """Update quantity of an item; zero or less removes it"""
    require_restaurant(menu_service, slug)
    session_id, store = open_session(registry, request.session_id)
    try:
        cart = store.scoped(slug)
        cart.update_quantity(request.name, request.quantity, request.variant)
        return cart_response(session_id, cart)
    except Exception as e:
        logger.error(f"Error updating item quantity: {e}")
        raise HTTPException(status_code=500, detail="Failed to update item quantity")


@router.delete("/api/cart/{slug}/items", response_model=CartResponse)
async def remove_item(slug: str, request: RemoveItemRequest,
                      registry: CartSessionRegistry = Depends(get_registry),
                      menu_service: MenuService = Depends(get_menu_service)):
    """Remove an item from the cart"""
    require_restaurant(menu_service, slug)
    session_id, store = open_session(registry, request.session_id)
    try:
        cart = store.scoped(slug)
        cart.remove_from_cart(request.name, request.variant)
        return cart_response(session_id, cart)
    except Exception as e:
        logger.error(f"Error removing item from cart: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove item from cart")


@router.delete("/api/cart/{slug}", response_model=CartResponse)
async def clear_cart(slug: str, session_id: Optional[str] = None,
                     registry: CartSessionRegistry = Depends(get_registry),
                     menu_service: MenuService = Depends(get_menu_service)):
    """Clear the entire cart, cancelling any pending auto-clear"""
    require_restaurant(menu_service, slug)
    session_id, store = open_session(registry, session_id)
    try:
        cart = store.scoped(slug)
        cart.clear_cart()
        return cart_response(session_id, cart)
    except Exception as e:
        logger.error(f"Error clearing cart: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear cart")


@router.post("/api/cart/{slug}/location", response_model=CartResponse)
async def capture_location(slug: str, request: LocationRequest,
                           registry: CartSessionRegistry = Depends(get_registry),
                           menu_service: MenuService = Depends(get_menu_service)):
    """Remember the table/room from a QR code link for dine-in checkout"""
    require_restaurant(menu_service, slug)
    session_id, store = open_session(registry, request.session_id)
    cart = store.scoped(slug)
    cart.set_prefill_location(request.loc)
    return cart_response(session_id, cart)


@router.post("/api/cart/{slug}/checkout", response_model=CheckoutResponse)
async def checkout(slug: str, request: CheckoutRequest,
                   registry: CartSessionRegistry = Depends(get_registry),
                   menu_service: MenuService = Depends(get_menu_service),
                   order_backend: OrderBackendService = Depends(get_order_backend),
                   builder: OrderMessageBuilder = Depends(get_message_builder)):
    """Build the WhatsApp order, optionally persist it, and start the auto-clear countdown"""
    restaurant = require_restaurant(menu_service, slug)
    if is_ordering_disabled(restaurant):
        raise HTTPException(status_code=403, detail="Restaurant is not accepting orders")

    order_type = OrderType(request.order_type)
    if order_type not in restaurant.supported_order_types:
        raise HTTPException(status_code=400, detail=f"{order_type.label} is not available at this restaurant")

    session_id, store = open_session(registry, request.session_id)
    cart = store.scoped(slug)
    items = cart.cart_items
    if not items:
        raise HTTPException(status_code=400, detail="Cart is empty")

    customer = cart.customer_details
    overrides = {
        "name": request.customer_name,
        "phone": request.phone,
        "address": request.address,
    }
    if any(value is not None for value in overrides.values()):
        customer = CustomerDetails(**{
            field: value if value is not None else getattr(customer, field)
            for field, value in overrides.items()
        })
        cart.set_customer_details(customer)

    errors = validate_order_form(restaurant, order_type, customer, request.delivery_area)
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})

    table_number = UtilityService.clean_text(request.table_number)
    if order_type == OrderType.DINE_IN and not table_number and cart.prefill_location:
        table_number = UtilityService.format_location_label(cart.prefill_location)

    details = OrderDetails(
        customer_name=customer.name.strip(),
        order_type=order_type,
        items=items,
        total=CartService.get_total(items),
        phone=customer.phone,
        address=customer.address,
        table_number=table_number,
        delivery_area=request.delivery_area,
    )
    built = builder.build_order(restaurant, details)

    # The countdown starts before the backend call yields to other requests
    cart.place_order()

    backend_submitted = False
    if order_backend.enabled:
        backend_submitted = await order_backend.submit_order(builder.build_order_payload(restaurant, details))
        if not backend_submitted:
            logger.warning(f"Order for {slug} not persisted; continuing with WhatsApp relay")

    return CheckoutResponse(
        session_id=session_id,
        message=built.display_text,
        whatsapp_url=built.deep_link_url,
        total=details.total,
        backend_submitted=backend_submitted,
        auto_clear=auto_clear_response(cart),
    )


@router.post("/api/cart/{slug}/cancel-auto-clear", response_model=CartResponse)
async def cancel_auto_clear(slug: str, request: SessionRequest,
                            registry: CartSessionRegistry = Depends(get_registry),
                            menu_service: MenuService = Depends(get_menu_service)):
    """Keep the cart after checkout ("Don't clear cart")"""
    require_restaurant(menu_service, slug)
    session_id, store = open_session(registry, request.session_id)
    cart = store.scoped(slug)
    cart.cancel_auto_clear()
    return cart_response(session_id, cart)


# Customer information endpoints
@router.get("/api/customer", response_model=CustomerInfoResponse)
async def get_customer_info(session_id: Optional[str] = None,
                            registry: CartSessionRegistry = Depends(get_registry)):
    session_id, store = open_session(registry, session_id)
    details = store.get_customer_details()
    return CustomerInfoResponse(session_id=session_id, **details.to_dict())


@router.put("/api/customer", response_model=CustomerInfoResponse)
async def update_customer_info(request: CustomerInfoRequest,
                               registry: CartSessionRegistry = Depends(get_registry)):
    """Update customer information shared by every restaurant"""
    session_id, store = open_session(registry, request.session_id)
    try:
        details = CustomerDetails(name=request.name, phone=request.phone, address=request.address)
        store.set_customer_details(details)
        return CustomerInfoResponse(session_id=session_id, **details.to_dict())
    except Exception as e:
        logger.error(f"Error updating customer info: {e}")
        raise HTTPException(status_code=500, detail="Failed to update customer information")


# Session endpoints
@router.post("/api/session/focus", response_model=FocusResponse)
async def session_focus(request: SessionRequest,
                        registry: CartSessionRegistry = Depends(get_registry)):
    """Client regained focus/visibility: refresh carts and run the expiry sweep"""
    session_id, store = open_session(registry, request.session_id)
    cleared = store.handle_focus()
    return FocusResponse(session_id=session_id, cleared=cleared)


def create_app(registry: Optional[CartSessionRegistry] = None,
               menu_service: Optional[MenuService] = None,
               order_backend: Optional[OrderBackendService] = None,
               message_builder: Optional[OrderMessageBuilder] = None,
               load_menu: bool = True,
               start_scheduler: bool = True) -> FastAPI:
    registry = registry or CartSessionRegistry()
    menu_service = menu_service or MenuService()
    scheduler = AsyncIOScheduler()

    # Application lifespan
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting DirectOrder cart service...")
        if load_menu and not await menu_service.load():
            logger.error("Menu could not be loaded; restaurants will return 404")
        if start_scheduler:
            schedule_sweep(scheduler, registry.sweep_all)
            scheduler.start()
            logger.info(f"Auto-clear sweep scheduled every {AUTO_CLEAR_SWEEP_SECONDS}s")
        yield
        # Shutdown
        if scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Shutting down DirectOrder cart service...")

    app = FastAPI(
        title="DirectOrder Cart API",
        description="Restaurant menu cart with WhatsApp order relay and auto-clear after checkout",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.registry = registry
    app.state.menu_service = menu_service
    app.state.order_backend = order_backend or OrderBackendService()
    app.state.message_builder = message_builder or OrderMessageBuilder()
    app.state.scheduler = scheduler

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "fastapi_order_app:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info"
    )
