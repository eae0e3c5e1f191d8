"""Unit tests for OrderDjangoRepository and the Order model."""

from __future__ import annotations

import re
from decimal import Decimal

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order
from modules.orders.repositories import OrderDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


@pytest.fixture()
def order(repo, customer, seller, product):
    return repo.create(
        {
            "customer_id": customer.id,
            "seller_id": seller.id,
            "product_id": product.id,
            "title": product.name,
            "quantity": 3,
            "unit_price": Decimal("40.00"),
            "idempotency_key": "manual-1",
        }
    )


class TestOrderRepository:
    def test_create_computes_total_and_number(self, order):
        assert order.total_amount == Decimal("120.00")
        assert order.status == OrderStatus.PENDING
        assert not order.is_terminal
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

    def test_get_by_id(self, repo, order):
        assert repo.get_by_id(str(order.id)) == order

    def test_get_by_invalid_id_returns_none(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_get_by_idempotency_key(self, repo, order):
        assert repo.get_by_idempotency_key("manual-1") == order
        assert repo.get_by_idempotency_key("missing") is None

    def test_list_filters(self, repo, order, seller):
        assert repo.list({"seller_id": seller.id}) == [order]
        assert repo.list({"status": OrderStatus.SHIPPED}) == []

    def test_delete_is_soft(self, repo, order):
        assert repo.delete(str(order.id)) is True

        assert repo.list() == []
        assert Order.objects.get(id=order.id).is_deleted

    def test_delete_unknown(self, repo):
        assert repo.delete("0192f0a4-7c1e-7d11-9a43-2b1c5e6f7a80") is False
