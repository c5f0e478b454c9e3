"""
Order backend client: persists orders for the restaurant's live dashboard
"""
import asyncio
import json
import logging
from typing import Dict, Optional

import aiohttp

from config.settings import ORDER_BACKEND_URL, ORDER_BACKEND_HEADERS, ORDER_RECEIPT_MODE

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10


class OrderBackendService:
    """
    Submission is best effort: failures are logged and reported as False,
    never raised, so the WhatsApp relay always goes ahead.
    """

    def __init__(self, url: str = ORDER_BACKEND_URL, headers: Optional[Dict[str, str]] = None,
                 enabled: Optional[bool] = None):
        self.url = url
        self.headers = headers if headers is not None else ORDER_BACKEND_HEADERS
        if enabled is None:
            enabled = ORDER_RECEIPT_MODE == "dashboard" and bool(url)
        self.enabled = enabled

    async def submit_order(self, payload: Dict) -> bool:
        """Submit order payload to the backend"""
        if not self.enabled:
            return False

        if not payload.get("restaurantId"):
            logger.error("Order payload missing restaurantId")
            return False

        if not payload.get("customerName"):
            logger.error("Order payload missing customer name")
            return False

        if not payload.get("items"):
            logger.error("Order payload missing items")
            return False

        logger.debug(f"Order payload: {json.dumps(payload, ensure_ascii=False)}")

        try:
            timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, headers=self.headers, json=payload) as response:
                    if 200 <= response.status < 300:
                        logger.info(f"Order submitted for {payload['restaurantId']} ({len(payload['items'])} items)")
                        return True

                    error_text = await response.text()
                    logger.error(f"Order submission failed: {response.status} - {error_text}")
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error submitting order to backend: {type(e).__name__}: {e}")
            return False
