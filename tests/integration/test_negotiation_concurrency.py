"""Negotiation concurrency integration test.

Proves that the conditional ``last_sequence`` update in
``NegotiationDjangoRepository.append`` lets exactly one of several
simultaneous responses win.

Scenario:
- A PENDING negotiation opened by the customer.
- 8 threads race as the seller: half try to ACCEPT, half to COUNTER.
- With an expected sequence the losers see ``Conflict`` or
  ``StaleNegotiation``.
- Without one the losers retry against the fresh state and are refused
  there (``StaleNegotiation`` or ``InvalidTransition``).
- Either way exactly one response is recorded at sequence 2.
- The ledger holds a gap-free sequence and replays to the cached state.

Uses ``TransactionTestCase`` so each thread can see committed data.
SQLite serialises writers at the file level, so the race is only
meaningful on a server database.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

import django
import pytest
from django.db import connection
from django.test import TransactionTestCase

from modules.accounts.models import Account, AccountRole
from modules.catalog.models import Product
from modules.negotiations.constants import NegotiationStatus
from modules.negotiations.dtos import CreateNegotiationDTO
from modules.negotiations.exceptions import (
    Conflict,
    InvalidTransition,
    StaleNegotiation,
)
from modules.negotiations.models import LedgerEvent
from modules.negotiations.services import default_negotiation_service
from modules.orders.models import Order

logger = logging.getLogger(__name__)

NUM_WORKERS = 8

pytestmark = pytest.mark.integration


@pytest.mark.skipif(
    connection.vendor == "sqlite", reason="needs row-level concurrency"
)
class TestRespondConcurrency(TransactionTestCase):
    """Prove that only one response per sequence number is ever recorded."""

    def setUp(self):
        self.customer = Account.objects.create(
            username="race-buyer", email="race-buyer@example.com"
        )
        self.seller = Account.objects.create(
            username="race-potter",
            email="race-potter@example.com",
            role=AccountRole.ARTISAN,
        )
        self.product = Product.objects.create(
            seller=self.seller,
            sku="RACE-01",
            name="Race vase",
            price=Decimal("100.00"),
            stock_quantity=3,
        )
        self.thread = default_negotiation_service().create_negotiation(
            CreateNegotiationDTO(
                customer_id=self.customer.id,
                seller_id=self.seller.id,
                product_id=self.product.id,
                opening_price=Decimal("75.00"),
            )
        )

    def _respond_in_thread(self, worker: int, expected_sequence=None) -> str:
        """Returns 'won', 'conflict', 'stale' or 'refused'."""
        django.db.connections.close_all()

        service = default_negotiation_service()
        if worker % 2:
            action, price = "ACCEPT", None
        else:
            action, price = "COUNTER", Decimal("90.00")
        try:
            service.respond(
                self.thread.id,
                self.seller.id,
                action,
                price=price,
                expected_sequence=expected_sequence,
            )
            logger.warning("Worker %d: %s won", worker, action)
            return "won"
        except Conflict:
            return "conflict"
        except StaleNegotiation:
            return "stale"
        except InvalidTransition:
            return "refused"

    def _race(self, expected_sequence=None):
        results = []
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [
                pool.submit(self._respond_in_thread, i, expected_sequence)
                for i in range(NUM_WORKERS)
            ]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def test_exactly_one_response_wins(self):
        results = self._race(expected_sequence=2)

        self.assertEqual(results.count("won"), 1, results)
        self.assertNotIn("refused", results)
        self._assert_single_response_recorded()

    def test_retried_losers_are_refused(self):
        results = self._race()

        self.assertEqual(results.count("won"), 1, results)
        self.assertNotIn("conflict", results)
        self._assert_single_response_recorded()

    def _assert_single_response_recorded(self):
        self.thread.refresh_from_db()
        sequences = list(
            LedgerEvent.objects.filter(thread=self.thread)
            .order_by("sequence")
            .values_list("sequence", flat=True)
        )
        self.assertEqual(sequences, list(range(1, self.thread.last_sequence + 1)))
        self.assertEqual(
            LedgerEvent.objects.filter(thread=self.thread, sequence=2).count(), 1
        )
        self.assertIn(
            self.thread.status,
            {NegotiationStatus.COMPLETED, NegotiationStatus.COUNTER_OFFERED},
        )
        self.assertLessEqual(Order.objects.count(), 1)
        self.assertEqual(
            default_negotiation_service().verify_ledger(self.thread.id),
            self.thread.state,
        )
