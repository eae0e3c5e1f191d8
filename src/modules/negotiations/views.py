"""Negotiation API views.

Exposes the ``NegotiationService`` via HTTP using a DRF ViewSet.  The
acting account is always the one linked to the authenticated user; ids in
the payload never decide who is acting.  Domain exceptions are caught and
translated into HTTP status codes; the view never swallows generic
exceptions.
"""

from __future__ import annotations

from typing import Optional, Tuple, Type

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.models import Account
from modules.accounts.repositories import AccountDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.negotiations.dtos import CreateNegotiationDTO, InviteCustomerDTO, RespondDTO
from modules.negotiations.exceptions import (
    AccountNotFound,
    AdapterFailure,
    Conflict,
    InactiveAccount,
    InvalidOffer,
    InvalidSubject,
    InvalidTransition,
    NegotiationError,
    NegotiationNotFound,
    NotParticipant,
    SelfNegotiation,
    StaleNegotiation,
)
from modules.negotiations.filters import NegotiationFilter
from modules.negotiations.models import NegotiationThread
from modules.negotiations.serializers import (
    CancelSerializer,
    CreateNegotiationSerializer,
    InviteCustomerSerializer,
    LedgerEventSerializer,
    NegotiationListSerializer,
    NegotiationSerializer,
    RespondSerializer,
    RoleQuerySerializer,
)
from modules.negotiations.services import default_negotiation_service

ERROR_STATUS: Tuple[Tuple[Type[NegotiationError], int], ...] = (
    (NegotiationNotFound, status.HTTP_404_NOT_FOUND),
    (AccountNotFound, status.HTTP_404_NOT_FOUND),
    (NotParticipant, status.HTTP_403_FORBIDDEN),
    (InactiveAccount, status.HTTP_400_BAD_REQUEST),
    (SelfNegotiation, status.HTTP_400_BAD_REQUEST),
    (InvalidSubject, status.HTTP_400_BAD_REQUEST),
    (InvalidOffer, status.HTTP_400_BAD_REQUEST),
    (InvalidTransition, status.HTTP_400_BAD_REQUEST),
    (StaleNegotiation, status.HTTP_409_CONFLICT),
    (Conflict, status.HTTP_409_CONFLICT),
    (AdapterFailure, status.HTTP_502_BAD_GATEWAY),
)

ACTION_SCOPES = {"create", "invite", "respond", "cancel", "complete"}
LISTING_SCOPES = {"list", "retrieve", "history", "stats"}


def negotiation_error_response(exc: NegotiationError) -> Response:
    """Translate a domain exception into an HTTP response."""
    for exc_class, http_status in ERROR_STATUS:
        if isinstance(exc, exc_class):
            break
    else:
        http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    body = {"detail": str(exc), "code": type(exc).__name__}
    if isinstance(exc, InvalidTransition):
        body["reason"] = str(exc.reason)
    return Response(body, status=http_status)


class NegotiationViewSet(GenericViewSet):
    """ViewSet for negotiation operations.

    Uses ``NegotiationService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = NegotiationThread.objects.all()
    serializer_class = NegotiationSerializer
    filterset_class = NegotiationFilter
    filter_backends = [DjangoFilterBackend]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = default_negotiation_service()
        self._accounts = AccountDjangoRepository()

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scope per action."""
        throttle_scope: str | None
        if self.action in ACTION_SCOPES:
            throttle_scope = "negotiation_actions"
        elif self.action in LISTING_SCOPES:
            throttle_scope = "negotiation_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _account(self, request: Request) -> Optional[Account]:
        return self._accounts.get_by_user(request.user.pk)

    @staticmethod
    def _no_account() -> Response:
        return Response(
            {"detail": "No marketplace account is linked to this user."},
            status=status.HTTP_403_FORBIDDEN,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @extend_schema(request=CreateNegotiationSerializer, responses=NegotiationSerializer)
    def create(self, request: Request) -> Response:
        """POST /api/v1/negotiations/

        The authenticated account is the customer.
        """
        account = self._account(request)
        if account is None:
            return self._no_account()

        serializer = CreateNegotiationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = CreateNegotiationDTO(customer_id=account.id, **data)
        try:
            thread = self._service.create_negotiation(dto)
        except NegotiationError as exc:
            return negotiation_error_response(exc)

        return Response(
            NegotiationSerializer(thread).data, status=status.HTTP_201_CREATED
        )

    @extend_schema(request=InviteCustomerSerializer, responses=NegotiationSerializer)
    @action(detail=False, methods=["post"])
    def invite(self, request: Request) -> Response:
        """POST /api/v1/negotiations/invite/

        The authenticated account is the seller.
        """
        account = self._account(request)
        if account is None:
            return self._no_account()

        serializer = InviteCustomerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = InviteCustomerDTO(seller_id=account.id, **serializer.validated_data)
        try:
            thread = self._service.invite_customer(dto)
        except NegotiationError as exc:
            return negotiation_error_response(exc)

        return Response(
            NegotiationSerializer(thread).data, status=status.HTTP_201_CREATED
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/negotiations/?role=customer|seller

        Active negotiations (PENDING, COUNTER_OFFERED, ACCEPTED) of the
        authenticated account in the given role.  Narrow with ``status``,
        ``product``, ``min_price``, ``max_price`` or ``expires_before``.
        """
        account = self._account(request)
        if account is None:
            return self._no_account()

        query = RoleQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        threads = self.filter_queryset(
            self._service.get_active_negotiations(
                account.id, query.validated_data["role"]
            )
        )
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(threads, request)
        serializer = NegotiationListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/negotiations/{pk}/"""
        account = self._account(request)
        if account is None:
            return self._no_account()
        try:
            thread = self._service.get_negotiation(pk, viewer_id=account.id)
        except NegotiationError as exc:
            return negotiation_error_response(exc)
        return Response(NegotiationSerializer(thread).data)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/negotiations/{pk}/history/

        Full transcript, available for terminal negotiations too.
        """
        account = self._account(request)
        if account is None:
            return self._no_account()
        try:
            events = self._service.get_history(pk, viewer_id=account.id)
        except NegotiationError as exc:
            return negotiation_error_response(exc)
        return Response(LedgerEventSerializer(events, many=True).data)

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/negotiations/stats/?role=customer|seller"""
        account = self._account(request)
        if account is None:
            return self._no_account()

        query = RoleQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        role = query.validated_data["role"]
        return Response(
            {"role": role, "counts": self._service.get_stats(account.id, role)}
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @extend_schema(request=RespondSerializer, responses=NegotiationSerializer)
    @action(detail=True, methods=["post"])
    def respond(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/negotiations/{pk}/respond/

        Body: ``action`` (ACCEPT, REJECT, COUNTER, CANCEL), ``price`` for
        COUNTER, optional ``note`` and ``expected_sequence``.
        """
        account = self._account(request)
        if account is None:
            return self._no_account()

        serializer = RespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            dto = RespondDTO(
                thread_id=pk, actor_id=account.id, **serializer.validated_data
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            thread = self._service.respond(**dto.model_dump())
        except NegotiationError as exc:
            return negotiation_error_response(exc)

        return Response(NegotiationSerializer(thread).data)

    @extend_schema(request=CancelSerializer, responses=NegotiationSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/negotiations/{pk}/cancel/"""
        account = self._account(request)
        if account is None:
            return self._no_account()

        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self._service.cancel(
                pk, account.id, reason=serializer.validated_data["reason"]
            )
            thread = self._service.get_negotiation(pk, viewer_id=account.id)
        except NegotiationError as exc:
            return negotiation_error_response(exc)

        return Response(NegotiationSerializer(thread).data)

    @extend_schema(request=None, responses=NegotiationSerializer)
    @action(detail=True, methods=["post"])
    def complete(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/negotiations/{pk}/complete/

        Retries order conversion for an accepted negotiation.
        """
        account = self._account(request)
        if account is None:
            return self._no_account()
        try:
            thread = self._service.get_negotiation(pk, viewer_id=account.id)
            thread = self._service.complete_conversion(thread.id)
        except NegotiationError as exc:
            return negotiation_error_response(exc)
        return Response(NegotiationSerializer(thread).data)
