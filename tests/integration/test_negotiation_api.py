"""Integration tests for the negotiation REST API.

Covers:
- Opening a negotiation (customer) and inviting a customer (seller).
- Respond / cancel / complete actions and their HTTP status mapping.
- Listing, retrieval, transcript and stats scoped to the caller.
- Authentication and account requirements.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.negotiations.constants import NegotiationStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

BASE_URL = "/api/v1/negotiations/"


def _detail(thread_id, action=""):
    url = f"{BASE_URL}{thread_id}/"
    return f"{url}{action}/" if action else url


@pytest.fixture()
def opened(customer_client, seller, product):
    response = customer_client.post(
        BASE_URL,
        {
            "seller_id": str(seller.id),
            "product_id": str(product.id),
            "opening_price": "80.00",
            "note": "Could you do 80?",
        },
        format="json",
    )
    assert response.status_code == 201, response.data
    return response.data


# ---------------------------------------------------------------------------
# Create / invite
# ---------------------------------------------------------------------------


class TestCreateNegotiation:
    def test_create_returns_thread(self, opened, customer, seller):
        assert opened["status"] == NegotiationStatus.PENDING
        assert opened["customer_id"] == customer.id
        assert opened["seller_id"] == seller.id
        assert opened["current_price"] == "80.00"
        assert opened["list_price"] == "100.00"
        assert opened["sequence"] == 1
        assert opened["next_sequence"] == 2
        assert opened["last_actor"] == "customer"

    def test_create_custom_piece(self, customer_client, seller):
        response = customer_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "specification": "Set of four espresso cups, speckled glaze",
                "opening_price": "120.00",
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["product_id"] is None
        assert response.data["title"] == "Set of four espresso cups, speckled glaze"

    def test_subject_is_required(self, customer_client, seller):
        response = customer_client.post(
            BASE_URL,
            {"seller_id": str(seller.id), "opening_price": "10.00"},
            format="json",
        )
        assert response.status_code == 400

    def test_negative_price_is_invalid(self, customer_client, seller, product):
        response = customer_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "product_id": str(product.id),
                "opening_price": "-1.00",
            },
            format="json",
        )
        assert response.status_code == 400

    def test_offer_out_of_range(self, customer_client, seller, product):
        response = customer_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "product_id": str(product.id),
                "opening_price": "10.00",
            },
            format="json",
        )
        assert response.status_code == 400
        assert response.data["code"] == "InvalidOffer"

    def test_create_on_variant(self, customer_client, seller, product, variant):
        response = customer_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "product_id": str(product.id),
                "variant_id": str(variant.id),
                "opening_price": "110.00",
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["variant_id"] == variant.id
        assert response.data["list_price"] == "120.00"

    def test_variant_without_product(self, customer_client, seller, variant):
        response = customer_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "variant_id": str(variant.id),
                "specification": "Like the large vase",
                "opening_price": "110.00",
            },
            format="json",
        )
        assert response.status_code == 400

    def test_self_negotiation(self, seller_client, seller, product):
        response = seller_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "product_id": str(product.id),
                "opening_price": "80.00",
            },
            format="json",
        )
        assert response.status_code == 400
        assert response.data["code"] == "SelfNegotiation"

    def test_unknown_seller(self, customer_client, other_customer, product):
        response = customer_client.post(
            BASE_URL,
            {
                "seller_id": str(other_customer.id),
                "product_id": str(product.id),
                "opening_price": "80.00",
            },
            format="json",
        )
        assert response.status_code == 404
        assert response.data["code"] == "AccountNotFound"

    def test_invite_customer(self, seller_client, customer, product):
        response = seller_client.post(
            f"{BASE_URL}invite/",
            {
                "customer_id": str(customer.id),
                "product_id": str(product.id),
                "price": "90.00",
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["last_actor"] == "seller"


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestRespond:
    def test_counter_then_accept_completes(self, opened, customer_client, seller_client):
        thread_id = opened["id"]

        countered = seller_client.post(
            _detail(thread_id, "respond"),
            {"action": "counter", "price": "92.50", "expected_sequence": 2},
            format="json",
        )
        assert countered.status_code == 200, countered.data
        assert countered.data["status"] == NegotiationStatus.COUNTER_OFFERED
        assert countered.data["round_count"] == 1

        accepted = customer_client.post(
            _detail(thread_id, "respond"),
            {"action": "ACCEPT", "expected_sequence": 3},
            format="json",
        )
        assert accepted.status_code == 200, accepted.data
        assert accepted.data["status"] == NegotiationStatus.COMPLETED
        order = Order.objects.get(source_negotiation_id=thread_id)
        assert accepted.data["order_ref"] == str(order.id)
        assert order.unit_price == Decimal("92.50")

    def test_own_offer_is_bad_request(self, opened, customer_client):
        response = customer_client.post(
            _detail(opened["id"], "respond"), {"action": "ACCEPT"}, format="json"
        )

        assert response.status_code == 400
        assert response.data["code"] == "InvalidTransition"
        assert response.data["reason"] == "not_your_turn"

    def test_stale_sequence_is_conflict(self, opened, seller_client):
        response = seller_client.post(
            _detail(opened["id"], "respond"),
            {"action": "REJECT", "expected_sequence": 1},
            format="json",
        )
        assert response.status_code == 409
        assert response.data["code"] == "Conflict"

    def test_terminal_thread_is_conflict(self, opened, seller_client):
        seller_client.post(
            _detail(opened["id"], "respond"), {"action": "REJECT"}, format="json"
        )

        response = seller_client.post(
            _detail(opened["id"], "respond"),
            {"action": "COUNTER", "price": "95.00"},
            format="json",
        )
        assert response.status_code == 409
        assert response.data["code"] == "StaleNegotiation"

    def test_outsider_is_forbidden(self, opened, other_customer):
        client = APIClient()
        client.force_authenticate(user=other_customer.user)

        response = client.post(
            _detail(opened["id"], "respond"), {"action": "CANCEL"}, format="json"
        )
        assert response.status_code == 403
        assert response.data["code"] == "NotParticipant"

    def test_unknown_action_is_bad_request(self, opened, seller_client):
        response = seller_client.post(
            _detail(opened["id"], "respond"), {"action": "EXPIRE"}, format="json"
        )
        assert response.status_code == 400

    def test_adapter_failure_is_bad_gateway(self, opened, seller_client):
        with patch(
            "modules.orders.adapters.NegotiatedOrderAdapter.convert",
            side_effect=RuntimeError("orders unavailable"),
        ):
            response = seller_client.post(
                _detail(opened["id"], "respond"), {"action": "ACCEPT"}, format="json"
            )

        assert response.status_code == 502
        assert response.data["code"] == "AdapterFailure"

        retried = seller_client.post(_detail(opened["id"], "complete"), format="json")
        assert retried.status_code == 200
        assert retried.data["status"] == NegotiationStatus.COMPLETED

    def test_cancel(self, opened, customer_client):
        response = customer_client.post(
            _detail(opened["id"], "cancel"), {"reason": "Found another"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == NegotiationStatus.CANCELLED

    def test_complete_before_accept(self, opened, seller_client):
        response = seller_client.post(_detail(opened["id"], "complete"), format="json")
        assert response.status_code == 400
        assert response.data["reason"] == "not_accepted"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    def test_list_by_role(self, opened, customer_client, seller_client):
        as_customer = customer_client.get(BASE_URL)
        as_seller = seller_client.get(BASE_URL, {"role": "seller"})
        seller_as_customer = seller_client.get(BASE_URL, {"role": "customer"})

        assert as_customer.status_code == 200
        assert [row["id"] for row in as_customer.data["results"]] == [opened["id"]]
        assert as_seller.data["count"] == 1
        assert seller_as_customer.data["count"] == 0

    def test_list_filters(self, opened, customer_client, seller):
        customer_client.post(
            BASE_URL,
            {
                "seller_id": str(seller.id),
                "specification": "Hand-thrown teapot",
                "opening_price": "140.00",
            },
            format="json",
        )

        cheap = customer_client.get(BASE_URL, {"max_price": "100"})
        by_product = customer_client.get(BASE_URL, {"product": opened["product_id"]})
        countered = customer_client.get(BASE_URL, {"status": "COUNTER_OFFERED"})

        assert [row["id"] for row in cheap.data["results"]] == [opened["id"]]
        assert [row["id"] for row in by_product.data["results"]] == [opened["id"]]
        assert countered.data["count"] == 0

    def test_invalid_role(self, customer_client):
        response = customer_client.get(BASE_URL, {"role": "broker"})
        assert response.status_code == 400

    def test_retrieve(self, opened, seller_client):
        response = seller_client.get(_detail(opened["id"]))
        assert response.status_code == 200
        assert response.data["id"] == opened["id"]

    def test_retrieve_unknown(self, customer_client):
        response = customer_client.get(
            _detail("0192f0a4-7c1e-7d11-9a43-2b1c5e6f7a80")
        )
        assert response.status_code == 404
        assert response.data["code"] == "NegotiationNotFound"

    def test_history(self, opened, seller_client):
        seller_client.post(
            _detail(opened["id"], "respond"), {"action": "REJECT"}, format="json"
        )

        response = seller_client.get(_detail(opened["id"], "history"))

        assert response.status_code == 200
        assert [row["kind"] for row in response.data] == ["PROPOSE", "REJECT"]
        assert response.data[0]["note"] == "Could you do 80?"

    def test_stats(self, opened, seller_client):
        response = seller_client.get(f"{BASE_URL}stats/", {"role": "seller"})

        assert response.status_code == 200
        assert response.data["role"] == "seller"
        assert response.data["counts"]["PENDING"] == 1
        assert response.data["counts"]["total"] == 1


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthentication:
    def test_anonymous_is_unauthorized(self, api_client):
        response = api_client.get(BASE_URL)
        assert response.status_code == 401

    def test_user_without_account_is_forbidden(self):
        user = get_user_model().objects.create_user(username="staff", password="x")
        client = APIClient()
        client.force_authenticate(user=user)

        response = client.get(BASE_URL)

        assert response.status_code == 403
        assert "account" in response.data["detail"]
