"""Order domain constants."""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

ORDER_NUMBER_MAX_RETRIES = 5

# Idempotency key of an order created from a negotiation: prefix + thread id.
NEGOTIATION_KEY_PREFIX = "negotiation:"
