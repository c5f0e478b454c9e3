"""
Configuration settings for the DirectOrder cart and order relay service
"""
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Auto-clear timer: cart is emptied this long after an order is placed
AUTO_CLEAR_WINDOW_MS = int(os.getenv("AUTO_CLEAR_WINDOW_MS", "30000"))
AUTO_CLEAR_SWEEP_SECONDS = float(os.getenv("AUTO_CLEAR_SWEEP_SECONDS", "5"))

# Customer session storage ("memory" or "file")
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "file")
STORAGE_DIR = os.getenv("STORAGE_DIR", "data/sessions")
# Sessions idle this long with no pending auto-clear are released from memory
SESSION_IDLE_TTL_SECONDS = int(os.getenv("SESSION_IDLE_TTL_SECONDS", "1800"))

# Outbound messaging link
WHATSAPP_BASE_URL = os.getenv("WHATSAPP_BASE_URL", "https://wa.me")
DINE_IN_FALLBACK_LOCATION = os.getenv("DINE_IN_FALLBACK_LOCATION", "Will inform on arrival")

# Order receipt: "whatsapp" only, or "dashboard" to also persist orders
ORDER_RECEIPT_MODE = os.getenv("ORDER_RECEIPT_MODE", "whatsapp")
ORDER_BACKEND_URL = os.getenv("ORDER_BACKEND_URL", "")
ORDER_BACKEND_API_KEY = os.getenv("ORDER_BACKEND_API_KEY", "")
ORDER_BACKEND_HEADERS = {
    "Authorization": f"Bearer {ORDER_BACKEND_API_KEY}",
    "apikey": ORDER_BACKEND_API_KEY,
    "Content-Type": "application/json"
}

# Outlet/menu data provider
MENU_API_URL = os.getenv("MENU_API_URL", "")
MENU_DATA_PATH = os.getenv("MENU_DATA_PATH", "data/menu.json")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

STORAGE_BACKENDS = ("memory", "file")
ORDER_RECEIPT_MODES = ("whatsapp", "dashboard")


def validate_settings():
    """Validate timer, storage and receipt configuration"""
    if AUTO_CLEAR_WINDOW_MS <= 0:
        raise ValueError(f"AUTO_CLEAR_WINDOW_MS must be positive, got {AUTO_CLEAR_WINDOW_MS}")

    if AUTO_CLEAR_SWEEP_SECONDS <= 0:
        raise ValueError(f"AUTO_CLEAR_SWEEP_SECONDS must be positive, got {AUTO_CLEAR_SWEEP_SECONDS}")

    if SESSION_IDLE_TTL_SECONDS <= 0:
        raise ValueError(f"SESSION_IDLE_TTL_SECONDS must be positive, got {SESSION_IDLE_TTL_SECONDS}")

    if STORAGE_BACKEND not in STORAGE_BACKENDS:
        raise ValueError(f"STORAGE_BACKEND must be one of {STORAGE_BACKENDS}, got '{STORAGE_BACKEND}'")

    if ORDER_RECEIPT_MODE not in ORDER_RECEIPT_MODES:
        raise ValueError(f"ORDER_RECEIPT_MODE must be one of {ORDER_RECEIPT_MODES}, got '{ORDER_RECEIPT_MODE}'")

    if ORDER_RECEIPT_MODE == "dashboard" and not ORDER_BACKEND_URL:
        logger.warning("ORDER_RECEIPT_MODE is 'dashboard' but ORDER_BACKEND_URL is empty; orders will only be relayed via WhatsApp")


# Validate configuration on import
try:
    validate_settings()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    raise
