"""
Placeholder store tools.

Each tool validates its input shape and answers with a stub payload until
the corresponding commerce API is connected.
"""

import logging
from typing import Any, Dict, List

from .base import Tool

logger = logging.getLogger(__name__)


class TrackOrderTool:
    name = "track_order"
    description = "Track the status and shipping information for a customer order"
    parameters = {
        "type": "object",
        "properties": {
            "orderId": {"type": "string", "description": "The order number or ID to track"},
            "email": {"type": "string", "description": "Customer email for verification (optional)"},
        },
        "required": ["orderId"],
    }

    async def execute(self, params: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"TrackOrderTool called (placeholder): orderId={params['orderId']}")
        return {
            "message": "Order tracking is not connected yet.",
            "orderId": params["orderId"],
        }


class CheckInventoryTool:
    name = "check_inventory"
    description = "Check the current inventory/stock level for a product in our store"
    parameters = {
        "type": "object",
        "properties": {
            "productId": {"type": "string", "description": "The product ID or SKU to check inventory for"},
            "productName": {
                "type": "string",
                "description": "The product name (optional, used for better results)",
            },
        },
        "required": ["productId"],
    }

    async def execute(self, params: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"CheckInventoryTool called (placeholder): productId={params['productId']}")
        return {
            "message": "Inventory lookup is not connected yet.",
            "productId": params["productId"],
        }


class CalculateShippingTool:
    name = "calculate_shipping"
    description = "Calculate shipping cost for a delivery address and cart"
    parameters = {
        "type": "object",
        "properties": {
            "country": {"type": "string", "description": "Destination country code (e.g., US, CA, UK)"},
            "state": {"type": "string", "description": "State or province (optional)"},
            "zipCode": {"type": "string", "description": "ZIP or postal code"},
            "cartTotal": {"type": "number", "description": "Total cart value in USD"},
        },
        "required": ["country", "zipCode", "cartTotal"],
    }

    async def execute(self, params: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"CalculateShippingTool called (placeholder): country={params['country']}")
        cart_total = params["cartTotal"]
        if not isinstance(cart_total, (int, float)) or cart_total < 0:
            raise ValueError("cartTotal must be a non-negative number")
        return {
            "message": "Shipping rates are not connected yet.",
            "country": params["country"],
            "zipCode": params["zipCode"],
        }


def default_tools() -> List[Tool]:
    return [TrackOrderTool(), CheckInventoryTool(), CalculateShippingTool()]
