"""Negotiation DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.negotiations.constants import (
    NOTE_MAX_LENGTH,
    PARTICIPANTS,
    RESPONSE_KINDS,
)
from modules.negotiations.models import LedgerEvent, NegotiationThread

PRICE_FIELD_KWARGS = {
    "max_digits": 10,
    "decimal_places": 2,
    "min_value": Decimal("0.01"),
}

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateNegotiationSerializer(serializers.Serializer):
    """Validates a customer's opening proposal."""

    seller_id = serializers.UUIDField()
    product_id = serializers.UUIDField(required=False, allow_null=True)
    variant_id = serializers.UUIDField(required=False, allow_null=True)
    specification = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    title = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=255
    )
    quantity = serializers.IntegerField(required=False, default=1, min_value=1)
    opening_price = serializers.DecimalField(**PRICE_FIELD_KWARGS)
    note = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=NOTE_MAX_LENGTH
    )
    expires_in_days = serializers.IntegerField(
        required=False, allow_null=True, min_value=1, max_value=7
    )

    def validate(self, attrs):
        if not attrs.get("product_id") and not attrs.get("specification", "").strip():
            raise serializers.ValidationError(
                "Either product_id or specification is required."
            )
        if attrs.get("variant_id") and not attrs.get("product_id"):
            raise serializers.ValidationError(
                {"variant_id": "A variant needs its product_id."}
            )
        return attrs


class InviteCustomerSerializer(serializers.Serializer):
    """Validates a seller's invitation on a listed product."""

    customer_id = serializers.UUIDField()
    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, default=1, min_value=1)
    price = serializers.DecimalField(**PRICE_FIELD_KWARGS)
    note = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=NOTE_MAX_LENGTH
    )
    expires_in_days = serializers.IntegerField(
        required=False, allow_null=True, min_value=1, max_value=7
    )


class RespondSerializer(serializers.Serializer):
    """Validates an accept / reject / counter / cancel request."""

    action = serializers.ChoiceField(choices=sorted(RESPONSE_KINDS))
    price = serializers.DecimalField(
        required=False, allow_null=True, **PRICE_FIELD_KWARGS
    )
    note = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=NOTE_MAX_LENGTH
    )
    expected_sequence = serializers.IntegerField(
        required=False, allow_null=True, min_value=1
    )

    def to_internal_value(self, data):
        if hasattr(data, "copy") and isinstance(data.get("action"), str):
            data = data.copy()
            data["action"] = data["action"].strip().upper()
        return super().to_internal_value(data)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=NOTE_MAX_LENGTH
    )


class RoleQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=sorted(PARTICIPANTS), default="customer")


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class LedgerEventSerializer(serializers.ModelSerializer):
    """Read serializer for one transcript entry."""

    class Meta:
        model = LedgerEvent
        fields = [
            "sequence",
            "actor",
            "kind",
            "price",
            "note",
            "expires_at",
            "created_at",
        ]
        read_only_fields = fields


class NegotiationSerializer(serializers.ModelSerializer):
    """Read serializer for a negotiation thread."""

    sequence = serializers.IntegerField(source="last_sequence", read_only=True)
    next_sequence = serializers.SerializerMethodField()

    class Meta:
        model = NegotiationThread
        fields = [
            "id",
            "customer_id",
            "seller_id",
            "product_id",
            "variant_id",
            "title",
            "specification",
            "quantity",
            "list_price",
            "status",
            "current_price",
            "round_count",
            "last_actor",
            "sequence",
            "next_sequence",
            "expires_at",
            "order_ref",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_next_sequence(self, obj: NegotiationThread) -> int:
        return obj.last_sequence + 1


class NegotiationListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for negotiation lists."""

    class Meta:
        model = NegotiationThread
        fields = [
            "id",
            "title",
            "status",
            "current_price",
            "round_count",
            "last_actor",
            "expires_at",
            "updated_at",
        ]
        read_only_fields = fields
