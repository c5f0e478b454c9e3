"""
Shared fixtures for the cart service tests
"""
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from services.auto_clear_service import AutoClearTimer
from services.cart_store import MultiTenantCartStore
from services.menu_service import MenuService
from services.storage_service import MemoryKeyValueStore

MENU_DATA_FILE = os.path.join(os.path.dirname(__file__), "data", "menu.json")

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to"""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryKeyValueStore()


@pytest.fixture
def store(storage, clock):
    return MultiTenantCartStore(storage, clock=clock, timer=AutoClearTimer(30000))


@pytest.fixture
def menu_data():
    with open(MENU_DATA_FILE, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def menu_service(menu_data):
    service = MenuService()
    service.load_data(menu_data)
    return service
