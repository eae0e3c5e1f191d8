from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.models import Account, AccountRole
from modules.accounts.repositories import AccountDjangoRepository
from modules.catalog.models import Product, ProductVariant
from modules.catalog.repositories import ProductDjangoRepository
from modules.messaging.channel import ChatMessagingChannel
from modules.negotiations.repositories import NegotiationDjangoRepository
from modules.negotiations.services import NegotiationService
from modules.orders.adapters import NegotiatedOrderAdapter


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Marketplace fixtures
# ---------------------------------------------------------------------------


def make_account(username, role=AccountRole.CUSTOMER, with_user=True, **overrides):
    user = None
    if with_user:
        user = get_user_model().objects.create_user(
            username=username, password="not-a-real-password"
        )
    defaults = {
        "user": user,
        "username": username,
        "display_name": username.title(),
        "email": f"{username}@example.com",
        "role": role,
    }
    defaults.update(overrides)
    return Account.objects.create(**defaults)


@pytest.fixture()
def account_factory():
    return make_account


@pytest.fixture()
def customer():
    return make_account("buyer")


@pytest.fixture()
def other_customer():
    return make_account("onlooker")


@pytest.fixture()
def seller():
    return make_account("potter", role=AccountRole.ARTISAN)


@pytest.fixture()
def product(seller):
    return Product.objects.create(
        seller=seller,
        sku="VASE-01",
        name="Glazed vase",
        price=Decimal("100.00"),
        stock_quantity=5,
    )


@pytest.fixture()
def variant(product):
    return ProductVariant.objects.create(
        product=product,
        sku="VASE-01-L",
        name="Glazed vase, large",
        price=Decimal("140.00"),
        discount_price=Decimal("120.00"),
        stock_quantity=2,
        attributes={"size": "large"},
    )


@pytest.fixture()
def service():
    return NegotiationService(
        negotiation_repository=NegotiationDjangoRepository(),
        account_repository=AccountDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        order_adapter=NegotiatedOrderAdapter(),
        messaging_channel=ChatMessagingChannel(),
    )


@pytest.fixture()
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer.user)
    return client


@pytest.fixture()
def seller_client(seller):
    client = APIClient()
    client.force_authenticate(user=seller.user)
    return client
