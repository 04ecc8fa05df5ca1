"""Serializers dedicated to retail group-buy deals."""
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from deals.models import Deal, DealTier, Participant


class TierInputSerializer(serializers.Serializer):
    """One row of a tier table as sent by suppliers and developers."""

    min_participants = serializers.IntegerField(min_value=0)
    max_participants = serializers.IntegerField(min_value=0)
    discount_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, default=Decimal("0"),
    )
    explicit_price = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    commission_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True,
    )


class DealTierSerializer(serializers.ModelSerializer):
    class Meta:
        model = DealTier
        fields = [
            "min_participants",
            "max_participants",
            "discount_percent",
            "explicit_price",
            "commission_percent",
        ]


class DealSerializer(serializers.ModelSerializer):
    """Read serializer for deals with their tier table."""

    tiers = DealTierSerializer(many=True, read_only=True)
    supplier_email = serializers.EmailField(source="supplier.email", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Deal
        fields = [
            "id",
            "supplier",
            "supplier_email",
            "name",
            "description",
            "category",
            "original_price",
            "total_capacity",
            "waiting_list_capacity",
            "target_participants",
            "min_participants",
            "end_time",
            "status",
            "status_display",
            "confirmed_count",
            "waiting_count",
            "issued_positions",
            "platform_commission_percent",
            "tiers",
            "activated_at",
            "closed_at",
            "created_at",
        ]
        read_only_fields = fields


class DealCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    category = serializers.ChoiceField(choices=Deal.Category.choices)
    original_price = serializers.IntegerField(min_value=1)
    total_capacity = serializers.IntegerField(min_value=1)
    waiting_list_capacity = serializers.IntegerField(min_value=0, required=False, default=0)
    target_participants = serializers.IntegerField(min_value=1)
    min_participants = serializers.IntegerField(min_value=1, required=False, default=1)
    end_time = serializers.DateTimeField()
    platform_commission_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True, default=None,
    )
    tiers = TierInputSerializer(many=True)

    def validate_platform_commission_percent(self, value):
        if value is not None and not Decimal("0") <= value <= Decimal("100"):
            raise serializers.ValidationError("La commission doit etre comprise entre 0 et 100.")
        return value


class TierTableSerializer(serializers.Serializer):
    tiers = TierInputSerializer(many=True)


class JoinDealSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)


class ParticipantSerializer(serializers.ModelSerializer):
    deal_name = serializers.CharField(source="deal.name", read_only=True)
    is_cancelled = serializers.BooleanField(read_only=True)
    total_amount = serializers.IntegerField(read_only=True)

    class Meta:
        model = Participant
        fields = [
            "id",
            "deal",
            "deal_name",
            "user",
            "name",
            "email",
            "phone",
            "position",
            "admission_status",
            "price_paid",
            "quantity",
            "total_amount",
            "tier_index",
            "position_in_tier",
            "joined_at",
            "cancelled_at",
            "is_cancelled",
        ]
        read_only_fields = fields


class AdmissionResultSerializer(serializers.Serializer):
    """Outcome of a join: confirmed, wait-listed or rejected with a reason."""

    status = serializers.CharField()
    position = serializers.IntegerField(allow_null=True)
    tier_index = serializers.IntegerField(allow_null=True)
    position_in_tier = serializers.IntegerField(allow_null=True)
    price = serializers.IntegerField(allow_null=True)
    waiting_list_position = serializers.IntegerField(allow_null=True)
    reason = serializers.CharField(allow_null=True)
    tier_unlocked = serializers.BooleanField()
    registration_id = serializers.SerializerMethodField()

    def get_registration_id(self, result):
        registration = result.registration
        return str(registration.pk) if registration is not None else None
