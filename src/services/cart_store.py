"""
Multi-tenant cart store: one in-memory cart and auto-clear state per restaurant,
hydrated lazily from persistent storage and written through on every change
"""
import json
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

from models.order_models import AutoClearPhase, AutoClearState, CartLineItem, CustomerDetails
from services.auto_clear_service import AutoClearTimer
from services.cart_service import Cart, CartService
from services.storage_service import (
    CUSTOMER_DETAILS_KEY,
    LAST_ORDER_PREFIX,
    KeyValueStore,
    cart_key,
    dont_clear_key,
    last_order_key,
    prefill_location_key,
)

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TenantState:
    cart: Cart = field(default_factory=list)
    auto_clear: AutoClearState = field(default_factory=AutoClearState)


class MultiTenantCartStore:
    """
    Carts for every restaurant a customer visits, keyed by restaurant slug.

    Storage is the source of truth. A tenant is read from storage at most
    once (ensure_hydrated) and every mutation writes storage first, then
    the in-memory copy, so the two never diverge once a call returns.
    """

    def __init__(self, storage: KeyValueStore, clock: Callable[[], int] = epoch_ms,
                 timer: Optional[AutoClearTimer] = None):
        self.storage = storage
        self.clock = clock
        self.timer = timer or AutoClearTimer()
        self._tenants: Dict[str, TenantState] = {}
        self._customer_details: Optional[CustomerDetails] = None

    # Hydration

    def is_hydrated(self, tenant: str) -> bool:
        return tenant in self._tenants

    def ensure_hydrated(self, tenant: str) -> TenantState:
        """Load a tenant from storage unless it is already in memory"""
        state = self._tenants.get(tenant)
        if state is None:
            state = self._read_tenant(tenant)
            self._tenants[tenant] = state
            logger.debug(f"Hydrated cart for {tenant}: {len(state.cart)} items")
        return state

    def _read_tenant(self, tenant: str) -> TenantState:
        return TenantState(cart=self._read_cart(tenant), auto_clear=self._read_auto_clear(tenant))

    def _read_cart(self, tenant: str) -> Cart:
        raw = self.storage.get(cart_key(tenant))
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("expected a list of items")
            cart: Cart = []
            for entry in data:
                cart = CartService.add_item(cart, CartLineItem.from_dict(entry))
            return cart
        except ValueError as e:
            logger.warning(f"Discarding corrupt cart for {tenant}: {e}")
            return []

    def _read_auto_clear(self, tenant: str) -> AutoClearState:
        raw = self.storage.get(last_order_key(tenant))
        timestamp = AutoClearTimer.parse_timestamp(raw)
        if timestamp is None:
            if raw is not None:
                logger.warning(f"Ignoring corrupt last order time for {tenant}: {raw!r}")
            return AutoClearState()
        return AutoClearState(
            last_order_timestamp=timestamp,
            suppress_clear=AutoClearTimer.parse_flag(self.storage.get(dont_clear_key(tenant))),
        )

    def refresh_hydrated(self):
        """Re-read every tenant already in memory, picking up writes from other sessions"""
        for tenant in list(self._tenants.keys()):
            self._tenants[tenant] = self._read_tenant(tenant)
        self._customer_details = None

    # Write-through

    def _save_cart(self, tenant: str, cart: Cart):
        self.storage.set(cart_key(tenant), json.dumps([item.to_dict() for item in cart], ensure_ascii=False))
        self.ensure_hydrated(tenant).cart = cart

    def _save_auto_clear(self, tenant: str, auto_clear: AutoClearState):
        if auto_clear.is_active:
            # The timestamp is written last so a partial write never pairs it with a stale flag
            self.storage.remove(last_order_key(tenant))
            self.storage.set(dont_clear_key(tenant), AutoClearTimer.format_flag(auto_clear.suppress_clear))
            self.storage.set(last_order_key(tenant), str(auto_clear.last_order_timestamp))
        else:
            self.storage.remove(last_order_key(tenant))
            self.storage.remove(dont_clear_key(tenant))
        self.ensure_hydrated(tenant).auto_clear = auto_clear

    def _clear(self, tenant: str):
        self.storage.remove(cart_key(tenant))
        self.storage.remove(last_order_key(tenant))
        self.storage.remove(dont_clear_key(tenant))
        if tenant in self._tenants:
            self._tenants[tenant] = TenantState()

    # Cart operations

    def get_cart(self, tenant: str) -> List[CartLineItem]:
        return [replace(item) for item in self.ensure_hydrated(tenant).cart]

    def add_to_cart(self, tenant: str, item: CartLineItem):
        state = self.ensure_hydrated(tenant)
        self._save_cart(tenant, CartService.add_item(state.cart, item))

    def update_quantity(self, tenant: str, name: str, quantity: int, variant: Optional[str] = None):
        state = self.ensure_hydrated(tenant)
        self._save_cart(tenant, CartService.update_quantity(state.cart, name, variant, quantity))

    def remove_from_cart(self, tenant: str, name: str, variant: Optional[str] = None):
        state = self.ensure_hydrated(tenant)
        self._save_cart(tenant, CartService.remove_item(state.cart, name, variant))

    def get_cart_total(self, tenant: str) -> float:
        return CartService.get_total(self.ensure_hydrated(tenant).cart)

    def get_item_quantity(self, tenant: str, name: str, variant: Optional[str] = None) -> int:
        return CartService.get_quantity(self.ensure_hydrated(tenant).cart, name, variant)

    def clear_cart(self, tenant: str):
        """Empty the cart and drop any pending auto-clear, whatever its state"""
        self._clear(tenant)
        self._tenants[tenant] = TenantState()
        logger.info(f"Cart cleared for {tenant}")

    # Auto-clear

    def place_order(self, tenant: str) -> AutoClearState:
        self.ensure_hydrated(tenant)
        auto_clear = self.timer.on_order_placed(self.clock())
        self._save_auto_clear(tenant, auto_clear)
        logger.info(f"Order placed for {tenant}; cart clears in {self.timer.window_ms}ms unless cancelled")
        return replace(auto_clear)

    def cancel_auto_clear(self, tenant: str) -> AutoClearState:
        state = self.ensure_hydrated(tenant)
        auto_clear = self.timer.on_cancel(state.auto_clear)
        if auto_clear != state.auto_clear:
            self._save_auto_clear(tenant, auto_clear)
            logger.info(f"Auto-clear cancelled for {tenant}")
        return replace(auto_clear)

    def get_auto_clear_state(self, tenant: str) -> AutoClearState:
        return replace(self.ensure_hydrated(tenant).auto_clear)

    def get_last_order_time(self, tenant: str) -> Optional[int]:
        return self.ensure_hydrated(tenant).auto_clear.last_order_timestamp

    def is_dont_clear(self, tenant: str) -> bool:
        return self.ensure_hydrated(tenant).auto_clear.suppress_clear

    def get_auto_clear_phase(self, tenant: str) -> AutoClearPhase:
        return self.timer.phase(self.ensure_hydrated(tenant).auto_clear)

    def get_remaining_ms(self, tenant: str) -> int:
        return self.timer.remaining_ms(self.ensure_hydrated(tenant).auto_clear, self.clock())

    def sweep_expired(self) -> List[str]:
        """
        Clear every tenant whose auto-clear window has elapsed.

        Scans storage rather than memory so orders placed in an earlier
        session are cleaned up too. Safe to call any number of times.
        """
        now = self.clock()
        cleared = []
        for key in self.storage.keys_with_prefix(LAST_ORDER_PREFIX):
            tenant = key[len(LAST_ORDER_PREFIX):]
            raw = self.storage.get(key)
            timestamp = AutoClearTimer.parse_timestamp(raw)
            if timestamp is None:
                logger.warning(f"Dropping corrupt last order time for {tenant}: {raw!r}")
                self.storage.remove(key)
                self.storage.remove(dont_clear_key(tenant))
                if tenant in self._tenants:
                    self._tenants[tenant].auto_clear = AutoClearState()
                continue

            auto_clear = AutoClearState(
                last_order_timestamp=timestamp,
                suppress_clear=AutoClearTimer.parse_flag(self.storage.get(dont_clear_key(tenant))),
            )
            if self.timer.is_expired(auto_clear, now):
                self._clear(tenant)
                cleared.append(tenant)
                logger.info(f"[AutoClear] Clearing cart for {tenant}")
        return cleared

    def has_pending_clear(self) -> bool:
        """True while any tenant has an auto-clear counting down"""
        for key in self.storage.keys_with_prefix(LAST_ORDER_PREFIX):
            tenant = key[len(LAST_ORDER_PREFIX):]
            auto_clear = AutoClearState(
                last_order_timestamp=AutoClearTimer.parse_timestamp(self.storage.get(key)),
                suppress_clear=AutoClearTimer.parse_flag(self.storage.get(dont_clear_key(tenant))),
            )
            if self.timer.phase(auto_clear) == AutoClearPhase.PENDING_CLEAR:
                return True
        return False

    def is_empty(self) -> bool:
        return not self.storage.keys()

    def handle_focus(self) -> List[str]:
        """Focus/visibility regained: pick up external writes, then sweep"""
        self.storage.reload()
        self.refresh_hydrated()
        return self.sweep_expired()

    # Customer details (shared by every restaurant)

    def get_customer_details(self) -> CustomerDetails:
        if self._customer_details is None:
            self._customer_details = self._read_customer_details()
        return replace(self._customer_details)

    def _read_customer_details(self) -> CustomerDetails:
        raw = self.storage.get(CUSTOMER_DETAILS_KEY)
        if raw is None:
            return CustomerDetails()
        try:
            return CustomerDetails.from_dict(json.loads(raw))
        except ValueError as e:
            logger.warning(f"Failed to parse customer details: {e}")
            return CustomerDetails()

    def set_customer_details(self, details: CustomerDetails):
        self.storage.set(CUSTOMER_DETAILS_KEY, json.dumps(details.to_dict(), ensure_ascii=False))
        self._customer_details = replace(details)

    # QR location prefill

    def set_prefill_location(self, tenant: str, loc: str):
        self.storage.set(prefill_location_key(tenant), loc)

    def get_prefill_location(self, tenant: str) -> Optional[str]:
        return self.storage.get(prefill_location_key(tenant))

    def scoped(self, tenant: str) -> "ScopedCart":
        return ScopedCart(self, tenant)


class ScopedCart:
    """A MultiTenantCartStore bound to one restaurant"""

    def __init__(self, store: MultiTenantCartStore, tenant: str):
        self.store = store
        self.tenant = tenant
        store.ensure_hydrated(tenant)

    @property
    def cart_items(self) -> List[CartLineItem]:
        return self.store.get_cart(self.tenant)

    @property
    def customer_details(self) -> CustomerDetails:
        return self.store.get_customer_details()

    @property
    def last_order_time(self) -> Optional[int]:
        return self.store.get_last_order_time(self.tenant)

    @property
    def dont_clear(self) -> bool:
        return self.store.is_dont_clear(self.tenant)

    @property
    def auto_clear_phase(self) -> AutoClearPhase:
        return self.store.get_auto_clear_phase(self.tenant)

    @property
    def prefill_location(self) -> Optional[str]:
        return self.store.get_prefill_location(self.tenant)

    def set_customer_details(self, details: CustomerDetails):
        self.store.set_customer_details(details)

    def add_to_cart(self, item: CartLineItem):
        self.store.add_to_cart(self.tenant, item)

    def remove_from_cart(self, name: str, variant: Optional[str] = None):
        self.store.remove_from_cart(self.tenant, name, variant)

    def update_quantity(self, name: str, quantity: int, variant: Optional[str] = None):
        self.store.update_quantity(self.tenant, name, quantity, variant)

    def get_cart_total(self) -> float:
        return self.store.get_cart_total(self.tenant)

    def get_item_quantity(self, name: str, variant: Optional[str] = None) -> int:
        return self.store.get_item_quantity(self.tenant, name, variant)

    def clear_cart(self):
        self.store.clear_cart(self.tenant)

    def place_order(self) -> AutoClearState:
        return self.store.place_order(self.tenant)

    def cancel_auto_clear(self) -> AutoClearState:
        return self.store.cancel_auto_clear(self.tenant)

    def remaining_ms(self) -> int:
        return self.store.get_remaining_ms(self.tenant)

    def set_prefill_location(self, loc: str):
        self.store.set_prefill_location(self.tenant, loc)
