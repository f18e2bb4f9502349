"""ReturnRequest queries."""

from marketplace.domain import marketplace
from marketplace.returns.return_request import ReturnRequest


@marketplace.repository(part_of=ReturnRequest)
class ReturnRequestRepository:
    def for_order_item(self, order_item_id) -> list:
        return self._dao.query.filter(order_item_id=str(order_item_id)).all().items

    def quantity_already_requested(self, order_item_id) -> int:
        return sum(r.quantity for r in self.for_order_item(order_item_id) if r.counts_against_item)

    def list_for_seller(self, seller_id, page=1, limit=10, status=None, order_id=None, buyer_id=None):
        filters = {"seller_id": str(seller_id)}
        return self._page(page, limit, status=status, order_id=order_id, buyer_id=buyer_id, **filters)

    def list_all(self, page=1, limit=10, status=None, order_id=None, buyer_id=None):
        return self._page(page, limit, status=status, order_id=order_id, buyer_id=buyer_id)

    def _page(self, page, limit, status=None, order_id=None, buyer_id=None, **filters):
        if status and status != "all":
            filters["status"] = status
        if order_id:
            filters["order_id"] = str(order_id)
        if buyer_id:
            filters["buyer_id"] = str(buyer_id)

        queryset = self._dao.query.filter(**filters) if filters else self._dao.query
        results = queryset.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

