"""Order queries for buyers, sellers and admins.

Listings are sorted newest first and paginated in the store. Seller-scoped
queries match against the denormalized ``seller_ids`` JSON list, so a seller
never needs to scan order items.
"""

from protean.exceptions import ObjectNotFoundError

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.state_machine import OrderStatus


@marketplace.repository(part_of=Order)
class OrderRepository:
    def _page(self, page, limit, **filters):
        queryset = self._dao.query.filter(**filters) if filters else self._dao.query
        queryset = queryset.order_by("-ordered_at")
        results = queryset.offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def list_for_buyer(self, buyer_id, page=1, limit=10, status=None):
        filters = {"buyer_id": str(buyer_id)}
        if status:
            filters["status"] = status
        return self._page(page, limit, **filters)

    def list_for_seller(self, seller_id, page=1, limit=10, status=None, buyer_id=None):
        filters = {"seller_ids__contains": f'"{seller_id}"'}
        if status:
            filters["status"] = status
        if buyer_id:
            filters["buyer_id"] = str(buyer_id)
        return self._page(page, limit, **filters)

    def list_all(self, page=1, limit=10, status=None, buyer_id=None, seller_id=None, order_id=None):
        filters = {}
        if status:
            filters["status"] = status
        if buyer_id:
            filters["buyer_id"] = str(buyer_id)
        if seller_id:
            filters["seller_ids__contains"] = f'"{seller_id}"'
        if order_id:
            filters["id"] = str(order_id)
        return self._page(page, limit, **filters)

    def get_for_buyer(self, order_id, buyer_id) -> Order:
        order = self._get_or_none(order_id)
        if order is None or str(order.buyer_id) != str(buyer_id):
            raise ObjectNotFoundError({"order_id": [f"Order {order_id} not found"]})
        return order

    def get_for_seller(self, order_id, seller_id) -> Order:
        order = self._get_or_none(order_id)
        if order is None or str(seller_id) not in order.seller_id_list:
            raise ObjectNotFoundError({"order_id": [f"Order {order_id} not found"]})
        return order

    def _orders_for_key(self, buyer_id, idempotency_key) -> list[Order]:
        return self._dao.query.filter(buyer_id=str(buyer_id), idempotency_key=idempotency_key).all().items

    def find_by_idempotency_key(self, buyer_id, idempotency_key) -> Order | None:
        """The order holding the key. Declined attempts do not hold it."""
        orders = self._orders_for_key(buyer_id, idempotency_key)
        return next((o for o in orders if o.status != OrderStatus.PAYMENT_FAILED.value), None)

    def declined_attempts(self, buyer_id, idempotency_key) -> int:
        orders = self._orders_for_key(buyer_id, idempotency_key)
        return sum(1 for o in orders if o.status == OrderStatus.PAYMENT_FAILED.value)

    def _get_or_none(self, order_id):
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            return None
