"""Negotiation service layer (Thread Manager).

Orchestrates one negotiation: loads the thread, asks the state machine to
validate the action against the current state and the caller's role,
appends the resulting ledger event (which refreshes the cached thread
fields in the same transaction) and triggers side effects.

Business rules enforced:
- RN-NEG-010: Both parties must be active accounts; the seller is an artisan.
- RN-NEG-011: Customer and seller must differ (``SelfNegotiation``).
- RN-NEG-012: Catalog subjects must be negotiable and owned by the seller;
  the opening price lies within ``[list * MIN_PRICE_RATIO, list]``.
- RN-NEG-013: A customer has at most one active negotiation per product.
- RN-NEG-014: Only participants act; they alternate on offers.
- RN-NEG-015: A lost optimistic-concurrency race is retried once.
- RN-NEG-016: ACCEPTED converts into exactly one order; a failed
  conversion leaves the thread ACCEPTED for a retry.

Chat messages and the order adapter run after the write transaction has
finished.  Messaging failures are logged, never raised.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.negotiations.constants import (
    MAX_WRITE_ATTEMPTS,
    PARTICIPANTS,
    PRICED_KINDS,
    RESPONSE_KINDS,
    STALE_REASONS,
    Actor,
    EventKind,
    NegotiationStatus,
    RejectionReason,
)
from modules.negotiations.events import (
    NegotiationAccepted,
    NegotiationClosed,
    NegotiationCompleted,
    NegotiationOpened,
    OfferCountered,
)
from modules.negotiations.exceptions import (
    AccountNotFound,
    AdapterFailure,
    Conflict,
    InactiveAccount,
    InvalidOffer,
    InvalidSubject,
    InvalidTransition,
    LedgerCorrupted,
    NegotiationNotFound,
    NotParticipant,
    SelfNegotiation,
    StaleNegotiation,
)
from modules.negotiations.machine import Action, NegotiationState, transition
from modules.negotiations.models import LedgerEvent, NegotiationThread
from modules.negotiations.ports import OrderRef
from modules.negotiations.templates import render_event_message
from shared.domain.events import DomainEvent

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.models import Account
    from modules.accounts.repositories.interfaces import IAccountRepository
    from modules.catalog.models import Product, ProductVariant
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.negotiations.dtos import CreateNegotiationDTO, InviteCustomerDTO
    from modules.negotiations.ports import IMessagingChannel, IOrderConversionAdapter
    from modules.negotiations.repositories.interfaces import INegotiationRepository

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


class NegotiationService:
    """Application service for negotiation use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    Policy values default to the ``NEGOTIATION_*`` settings.
    """

    def __init__(
        self,
        negotiation_repository: INegotiationRepository,
        account_repository: IAccountRepository,
        product_repository: IProductRepository,
        order_adapter: IOrderConversionAdapter,
        messaging_channel: IMessagingChannel,
        *,
        max_rounds: Optional[int] = None,
        offer_ttl: Optional[timedelta] = None,
        min_price_ratio: Optional[Decimal] = None,
        max_conversion_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._repo = negotiation_repository
        self._account_repo = account_repository
        self._product_repo = product_repository
        self._adapter = order_adapter
        self._channel = messaging_channel
        self._max_rounds = (
            max_rounds if max_rounds is not None else settings.NEGOTIATION_MAX_ROUNDS
        )
        self._offer_ttl = (
            offer_ttl
            if offer_ttl is not None
            else timedelta(hours=settings.NEGOTIATION_OFFER_TTL_HOURS)
        )
        self._min_price_ratio = Decimal(
            str(
                min_price_ratio
                if min_price_ratio is not None
                else settings.NEGOTIATION_MIN_PRICE_RATIO
            )
        )
        self.max_conversion_attempts = (
            max_conversion_attempts
            if max_conversion_attempts is not None
            else settings.NEGOTIATION_MAX_CONVERSION_ATTEMPTS
        )
        self._clock = clock

    # ------------------------------------------------------------------
    # Commands: opening
    # ------------------------------------------------------------------

    def create_negotiation(self, dto: CreateNegotiationDTO) -> NegotiationThread:
        """Open a negotiation with the customer's first proposal.

        If the customer already has an active negotiation on the same
        product, that thread is returned instead of opening a duplicate.

        Raises:
            SelfNegotiation: customer and seller are the same account.
            AccountNotFound: a party does not exist (or the seller is not
                an artisan).
            InactiveAccount: a party is deactivated.
            InvalidSubject: product missing / inactive / not the seller's /
                not negotiable, or no specification was given.
            InvalidOffer: price outside the allowed range or quantity above
                stock.
        """
        log = logger.bind(
            customer_id=str(dto.customer_id), seller_id=str(dto.seller_id)
        )
        log.info("negotiation.creation_started")

        if dto.customer_id == dto.seller_id:
            raise SelfNegotiation("You cannot negotiate with yourself.")

        customer = self._require_account(dto.customer_id)
        seller = self._require_seller(dto.seller_id)

        product: Optional[Product] = None
        variant: Optional[ProductVariant] = None
        list_price: Optional[Decimal] = None
        if dto.product_id is not None:
            product = self._require_negotiable_product(dto.product_id, seller)
            if dto.variant_id is not None:
                variant = self._require_variant(dto.variant_id, product)
            existing = self._repo.find_active_for_product(
                customer.id, product.id, variant_id=dto.variant_id
            )
            if existing:
                log.info(
                    "negotiation.duplicate_returned",
                    negotiation_id=str(existing.id),
                )
                return existing
            offered = variant or product
            self._check_offer(offered, dto.opening_price, dto.quantity)
            list_price = offered.effective_price
            title = dto.title or offered.name
        else:
            if not dto.specification:
                raise InvalidSubject("A custom negotiation needs a specification.")
            title = dto.title or dto.specification.splitlines()[0][:255]

        return self._open(
            customer=customer,
            seller=seller,
            actor=Actor.CUSTOMER,
            price=dto.opening_price,
            product=product,
            variant=variant,
            specification=dto.specification,
            title=title,
            quantity=dto.quantity,
            list_price=list_price,
            note=dto.note,
            expires_in_days=dto.expires_in_days,
        )

    def invite_customer(self, dto: InviteCustomerDTO) -> NegotiationThread:
        """Open a negotiation with a seller's offer on one of their products.

        Raises the same errors as :meth:`create_negotiation`.
        """
        log = logger.bind(
            customer_id=str(dto.customer_id), seller_id=str(dto.seller_id)
        )
        log.info("negotiation.invitation_started")

        if dto.customer_id == dto.seller_id:
            raise SelfNegotiation("You cannot negotiate with yourself.")

        seller = self._require_seller(dto.seller_id)
        customer = self._require_account(dto.customer_id)
        product = self._require_negotiable_product(dto.product_id, seller)
        variant = (
            self._require_variant(dto.variant_id, product)
            if dto.variant_id is not None
            else None
        )

        existing = self._repo.find_active_for_product(
            customer.id, product.id, variant_id=dto.variant_id
        )
        if existing:
            log.info(
                "negotiation.duplicate_returned", negotiation_id=str(existing.id)
            )
            return existing
        offered = variant or product
        self._check_offer(offered, dto.price, dto.quantity)

        return self._open(
            customer=customer,
            seller=seller,
            actor=Actor.SELLER,
            price=dto.price,
            product=product,
            variant=variant,
            specification="",
            title=offered.name,
            quantity=dto.quantity,
            list_price=offered.effective_price,
            note=dto.note,
            expires_in_days=dto.expires_in_days,
        )

    # ------------------------------------------------------------------
    # Commands: transitions
    # ------------------------------------------------------------------

    def respond(
        self,
        thread_id: UUID,
        actor_id: UUID,
        action: str,
        price: Optional[Decimal] = None,
        note: str = "",
        expected_sequence: Optional[int] = None,
    ) -> NegotiationThread:
        """Apply a participant's ACCEPT / REJECT / COUNTER / CANCEL.

        ``expected_sequence`` is the sequence number the client believes
        comes next.  A stale value raises ``Conflict`` immediately, so a
        re-submitted action is never applied twice.

        On ACCEPT the order adapter runs and COMPLETE is recorded.

        Raises:
            NegotiationNotFound: thread does not exist.
            NotParticipant: caller is neither customer nor seller.
            StaleNegotiation: thread is terminal or the offer lapsed.
            InvalidTransition: the state machine refused the action.
            Conflict: the write lost a race twice, or the client was stale.
            AdapterFailure: accepted, but the order could not be created.
        """
        kind = (action or "").strip().upper()
        if kind not in RESPONSE_KINDS:
            raise InvalidTransition(
                RejectionReason.UNKNOWN_ACTION, f"Unknown action {action!r}."
            )

        thread, event = self._apply(
            thread_id,
            kind,
            actor_id=actor_id,
            price=price,
            note=note,
            expected_sequence=expected_sequence,
        )
        self._notify(thread, event)

        if thread.status == NegotiationStatus.ACCEPTED:
            thread = self._convert(thread)
        return thread

    def cancel(self, thread_id: UUID, actor_id: UUID, reason: str = "") -> bool:
        """Withdraw from an open negotiation; ``True`` once it is CANCELLED."""
        thread = self.respond(thread_id, actor_id, EventKind.CANCEL, note=reason)
        return thread.status == NegotiationStatus.CANCELLED

    def expire(self, thread_id: UUID) -> NegotiationThread:
        """Record a system EXPIRE once the deadline has passed.

        Raises:
            InvalidTransition: the deadline has not passed (``not_expired``).
            StaleNegotiation: the thread already closed.
            Conflict: a participant acted concurrently and won.
        """
        thread, event = self._apply(thread_id, EventKind.EXPIRE)
        self._notify(thread, event)
        return thread

    def complete_conversion(self, thread_id: UUID) -> NegotiationThread:
        """(Re)run order conversion for an ACCEPTED thread.

        Returns the thread unchanged when it is already COMPLETED.

        Raises:
            NegotiationNotFound: thread does not exist.
            StaleNegotiation: thread closed without an agreement.
            InvalidTransition: thread has not been accepted yet.
            AdapterFailure: the order could not be created.
        """
        thread = self._get_thread(thread_id)
        if thread.status == NegotiationStatus.COMPLETED:
            return thread
        if thread.is_terminal:
            raise StaleNegotiation(f"Negotiation {thread_id} is {thread.status}.")
        if thread.status != NegotiationStatus.ACCEPTED:
            raise InvalidTransition(
                RejectionReason.NOT_ACCEPTED,
                "Only an accepted negotiation can be converted.",
            )
        return self._convert(thread)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_negotiation(
        self, thread_id: UUID, viewer_id: Optional[UUID] = None
    ) -> NegotiationThread:
        """Retrieve a thread; with *viewer_id*, only for its participants.

        Raises:
            NegotiationNotFound: thread does not exist.
            NotParticipant: *viewer_id* is not a party to the thread.
        """
        thread = self._get_thread(thread_id)
        if viewer_id is not None and thread.role_of(viewer_id) is None:
            raise NotParticipant("You are not a party to this negotiation.")
        return thread

    def get_active_negotiations(
        self, user_id: UUID, role: str
    ) -> QuerySet[NegotiationThread]:
        """PENDING / COUNTER_OFFERED / ACCEPTED threads of the user in *role*.

        Returns a queryset so the API layer can filter and paginate it.
        """
        return self._repo.list_active_for(user_id, self._check_role(role)).order_by(
            "-updated_at"
        )

    def get_history(
        self, thread_id: UUID, viewer_id: Optional[UUID] = None
    ) -> List[LedgerEvent]:
        """Full transcript, also for terminal threads."""
        thread = self.get_negotiation(thread_id, viewer_id)
        return self._repo.history(thread.id)

    def get_stats(self, user_id: UUID, role: str) -> Dict[str, int]:
        """Negotiation counts per status for the user in *role*."""
        return self._repo.stats(user_id, self._check_role(role))

    def verify_ledger(self, thread_id: UUID) -> NegotiationState:
        """Replay the ledger and compare it with the cached thread fields.

        Raises:
            NegotiationNotFound: thread does not exist.
            LedgerCorrupted: the fold disagrees with the cache or is illegal.
        """
        thread = self._get_thread(thread_id)
        replayed = self._repo.replay(thread.id)
        if replayed != thread.state:
            logger.error(
                "negotiation.ledger_mismatch",
                negotiation_id=str(thread.id),
                cached=thread.status,
                replayed=replayed.status if replayed else None,
            )
            raise LedgerCorrupted(
                f"Negotiation {thread_id} cache does not match its ledger."
            )
        return replayed

    # ------------------------------------------------------------------
    # Internals: opening
    # ------------------------------------------------------------------

    def _open(
        self,
        *,
        customer: Account,
        seller: Account,
        actor: str,
        price: Decimal,
        product: Optional[Product],
        variant: Optional[ProductVariant],
        specification: str,
        title: str,
        quantity: int,
        list_price: Optional[Decimal],
        note: str,
        expires_in_days: Optional[int],
    ) -> NegotiationThread:
        now = self._clock()
        ttl = timedelta(days=expires_in_days) if expires_in_days else self._offer_ttl
        action = Action(
            actor=actor,
            kind=EventKind.PROPOSE,
            price=price,
            at=now,
            expires_at=now + ttl,
        )
        result = transition(None, action, max_rounds=self._max_rounds)
        if not result.ok:
            self._log_rejection(None, actor, EventKind.PROPOSE, result.reason)
            raise InvalidTransition(result.reason, result.detail or None)

        thread = NegotiationThread(
            customer=customer,
            seller=seller,
            product=product,
            variant=variant,
            specification=specification,
            title=title,
            quantity=quantity,
            list_price=list_price,
        )
        thread.apply_state(result.state)
        thread.add_domain_event(
            NegotiationOpened(
                aggregate_id=thread.id,
                customer_id=str(customer.id),
                seller_id=str(seller.id),
                actor=actor,
                price=str(price),
            )
        )
        event = LedgerEvent(
            sequence=1,
            actor=actor,
            kind=EventKind.PROPOSE,
            price=price,
            note=note,
            expires_at=action.expires_at,
            actor_account=customer if actor == Actor.CUSTOMER else seller,
            created_at=now,
        )
        self._repo.open(thread, event)

        logger.info(
            "negotiation.created",
            negotiation_id=str(thread.id),
            actor=actor,
            price=str(price),
            expires_at=action.expires_at.isoformat(),
        )
        self._notify(thread, event)
        return thread

    def _require_account(self, account_id: UUID) -> Account:
        account = self._account_repo.get_by_id(str(account_id))
        if not account:
            raise AccountNotFound(f"Account {account_id} not found.")
        if not account.can_negotiate:
            raise InactiveAccount(f"Account {account_id} is inactive.")
        return account

    def _require_seller(self, account_id: UUID) -> Account:
        seller = self._require_account(account_id)
        if not seller.is_artisan:
            raise AccountNotFound(f"Account {account_id} is not a seller.")
        return seller

    def _require_negotiable_product(self, product_id: UUID, seller: Account) -> Product:
        product = self._product_repo.get_by_id(str(product_id))
        if not product:
            raise InvalidSubject(f"Product {product_id} not found.")
        if product.seller_id != seller.id:
            raise InvalidSubject(f"Product {product_id} is not sold by this seller.")
        if not product.is_negotiable:
            raise InvalidSubject(f"Product {product_id} is not open to negotiation.")
        return product

    def _require_variant(self, variant_id: UUID, product: Product) -> ProductVariant:
        variant = self._product_repo.get_variant(str(variant_id))
        if not variant:
            raise InvalidSubject(f"Variant {variant_id} not found.")
        if variant.product_id != product.id:
            raise InvalidSubject(
                f"Variant {variant_id} does not belong to product {product.id}."
            )
        if not variant.is_active:
            raise InvalidSubject(f"Variant {variant_id} is not available.")
        return variant

    def _check_offer(
        self, item: Union[Product, ProductVariant], price: Decimal, quantity: int
    ) -> None:
        ceiling = item.effective_price
        floor = (ceiling * self._min_price_ratio).quantize(CENT)
        if price < floor or price > ceiling:
            raise InvalidOffer(
                f"Price must be between {floor} and {ceiling} for {item.sku}."
            )
        if quantity > item.stock_quantity:
            raise InvalidOffer(
                f"{item.sku}: requested {quantity}, "
                f"available {item.stock_quantity}."
            )

    @staticmethod
    def _check_role(role: str) -> str:
        value = (role or "").strip().lower()
        if value not in PARTICIPANTS:
            raise ValueError(f"Role must be 'customer' or 'seller', not {role!r}.")
        return value

    # ------------------------------------------------------------------
    # Internals: transitions
    # ------------------------------------------------------------------

    def _apply(
        self,
        thread_id: UUID,
        kind: str,
        *,
        actor_id: Optional[UUID] = None,
        price: Optional[Decimal] = None,
        note: str = "",
        expected_sequence: Optional[int] = None,
        order: Optional[OrderRef] = None,
    ) -> Tuple[NegotiationThread, LedgerEvent]:
        """Decide and append, retrying once after a lost race.

        A client-supplied ``expected_sequence`` is never retried: the
        client decided against a state that no longer exists.
        """
        attempt = 1
        while True:
            try:
                return self._decide_and_append(
                    thread_id,
                    kind,
                    actor_id=actor_id,
                    price=price,
                    note=note,
                    expected_sequence=expected_sequence,
                    order=order,
                )
            except Conflict:
                if expected_sequence is not None or attempt >= MAX_WRITE_ATTEMPTS:
                    raise
                attempt += 1
                logger.info(
                    "negotiation.append_retry",
                    negotiation_id=str(thread_id),
                    kind=kind,
                    attempt=attempt,
                )

    def _decide_and_append(
        self,
        thread_id: UUID,
        kind: str,
        *,
        actor_id: Optional[UUID],
        price: Optional[Decimal],
        note: str,
        expected_sequence: Optional[int],
        order: Optional[OrderRef],
    ) -> Tuple[NegotiationThread, LedgerEvent]:
        with transaction.atomic():
            thread = self._get_thread(thread_id)

            account: Optional[Account] = None
            if actor_id is None:
                role = Actor.SYSTEM
            else:
                role = thread.role_of(actor_id)
                if role is None:
                    logger.warning(
                        "negotiation.not_participant",
                        negotiation_id=str(thread.id),
                        actor_id=str(actor_id),
                        action=kind,
                    )
                    raise NotParticipant("You are not a party to this negotiation.")
                account = self._require_account(actor_id)

            if (
                expected_sequence is not None
                and expected_sequence != thread.last_sequence + 1
            ):
                logger.warning(
                    "negotiation.stale_sequence",
                    negotiation_id=str(thread.id),
                    expected_sequence=expected_sequence,
                    current_sequence=thread.last_sequence,
                    action=kind,
                )
                raise Conflict(
                    f"Negotiation is at #{thread.last_sequence}; "
                    f"#{expected_sequence} is not next."
                )

            now = self._clock()
            action = Action(
                actor=role,
                kind=kind,
                price=price,
                at=now,
                expires_at=now + self._offer_ttl if kind in PRICED_KINDS else None,
            )
            result = transition(thread.state, action, max_rounds=self._max_rounds)
            if not result.ok:
                self._log_rejection(thread, role, kind, result.reason)
                if result.reason in STALE_REASONS:
                    raise StaleNegotiation(
                        f"Negotiation {thread.id} no longer accepts {kind} "
                        f"({result.reason})."
                    )
                raise InvalidTransition(result.reason, result.detail or None)

            new_state = result.state
            event = LedgerEvent(
                actor=role,
                kind=kind,
                price=price,
                note=note,
                expires_at=action.expires_at,
                actor_account=account,
                created_at=now,
            )
            order_ref = str(order.order_id) if order else None
            self._repo.append(
                thread.id,
                new_state.sequence,
                event,
                new_state,
                order_ref=order_ref,
                domain_events=self._domain_events_for(
                    thread, new_state, role, kind, order
                ),
            )
            thread.apply_state(new_state)
            if order_ref:
                thread.order_ref = order_ref

        logger.info(
            "negotiation.transitioned",
            negotiation_id=str(thread.id),
            actor=role,
            action=kind,
            status=thread.status,
            sequence=thread.last_sequence,
            round_count=thread.round_count,
        )
        return thread, event

    @staticmethod
    def _domain_events_for(
        thread: NegotiationThread,
        state: NegotiationState,
        role: str,
        kind: str,
        order: Optional[OrderRef],
    ) -> List[DomainEvent]:
        if kind == EventKind.COUNTER:
            return [
                OfferCountered(
                    aggregate_id=thread.id,
                    actor=role,
                    price=str(state.current_price),
                    round_count=state.round_count,
                )
            ]
        if kind == EventKind.ACCEPT:
            return [
                NegotiationAccepted(
                    aggregate_id=thread.id,
                    actor=role,
                    price=str(state.current_price),
                )
            ]
        if kind == EventKind.COMPLETE and order is not None:
            return [
                NegotiationCompleted(
                    aggregate_id=thread.id,
                    order_id=str(order.order_id),
                    order_number=order.order_number,
                )
            ]
        if state.is_terminal:
            return [
                NegotiationClosed(
                    aggregate_id=thread.id, status=state.status, actor=role
                )
            ]
        return []

    def _convert(self, thread: NegotiationThread) -> NegotiationThread:
        """Create the order for an ACCEPTED thread and record COMPLETE."""
        log = logger.bind(negotiation_id=str(thread.id))
        log.info("negotiation.conversion_started", price=str(thread.current_price))
        try:
            order = self._adapter.convert(
                thread_id=thread.id,
                final_price=thread.current_price,
                subject_ref=thread.subject_ref,
                customer_id=thread.customer_id,
                seller_id=thread.seller_id,
                quantity=thread.quantity,
            )
        except Exception as exc:
            attempts = self._repo.record_conversion_failure(thread.id)
            log.exception("negotiation.conversion_failed", attempt=attempts)
            if attempts >= self.max_conversion_attempts:
                log.error(
                    "negotiation.conversion_abandoned",
                    attempts=attempts,
                    max_attempts=self.max_conversion_attempts,
                )
            raise AdapterFailure(
                f"Order conversion failed for negotiation {thread.id}: {exc}"
            ) from exc

        try:
            thread, event = self._apply(
                thread.id,
                EventKind.COMPLETE,
                note=f"Order {order.order_number}",
                order=order,
            )
        except StaleNegotiation:
            current = self._get_thread(thread.id)
            if current.status == NegotiationStatus.COMPLETED:
                log.info("negotiation.already_completed", order_ref=current.order_ref)
                return current
            raise

        log.info("negotiation.completed", order_ref=thread.order_ref)
        self._notify(thread, event, order_number=order.order_number)
        return thread

    def _get_thread(self, thread_id: UUID) -> NegotiationThread:
        thread = self._repo.get_by_id(str(thread_id))
        if not thread:
            raise NegotiationNotFound(f"Negotiation {thread_id} not found.")
        return thread

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _notify(
        self,
        thread: NegotiationThread,
        event: LedgerEvent,
        order_number: str = "",
    ) -> None:
        """Post the chat summary of *event*; never fails the transition."""
        text = render_event_message(
            kind=event.kind,
            actor=event.actor,
            title=thread.title,
            price=event.price if event.price is not None else thread.current_price,
            note=event.note if event.kind != EventKind.COMPLETE else "",
            order_number=order_number,
        )
        try:
            with transaction.atomic():
                self._channel.post_event(
                    thread_id=thread.id,
                    actor_id=thread.account_for(event.actor),
                    rendered_text=text,
                )
        except Exception:
            logger.exception(
                "negotiation.message_failed",
                negotiation_id=str(thread.id),
                sequence=event.sequence,
                kind=event.kind,
            )

    @staticmethod
    def _log_rejection(
        thread: Optional[NegotiationThread], actor: str, kind: str, reason: str
    ) -> None:
        logger.warning(
            "negotiation.transition_rejected",
            negotiation_id=str(thread.id) if thread else None,
            status=thread.status if thread else None,
            actor=actor,
            action=kind,
            reason=str(reason),
        )


def default_negotiation_service() -> NegotiationService:
    """Wire the service with the Django repositories and collaborators."""
    from modules.accounts.repositories import AccountDjangoRepository
    from modules.catalog.repositories import ProductDjangoRepository
    from modules.messaging.channel import ChatMessagingChannel
    from modules.negotiations.repositories import NegotiationDjangoRepository
    from modules.orders.adapters import NegotiatedOrderAdapter

    return NegotiationService(
        negotiation_repository=NegotiationDjangoRepository(),
        account_repository=AccountDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        order_adapter=NegotiatedOrderAdapter(),
        messaging_channel=ChatMessagingChannel(),
    )
