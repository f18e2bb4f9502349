"""Marketplace bounded context: carts, checkout, orders and returns.

Handles the buyer cart lifecycle (anonymous and authenticated), the checkout
that freezes a cart into an immutable order, the order and order-item
fulfilment state machines, and the return-request workflow.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
