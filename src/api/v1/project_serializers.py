"""Serializers dedicated to real-estate projects."""
from __future__ import annotations

from rest_framework import serializers

from api.v1.deal_serializers import TierInputSerializer
from funnel import FunnelStage
from realestate.models import Developer, Project, ProjectTier, Registration


class DeveloperSerializer(serializers.ModelSerializer):
    class Meta:
        model = Developer
        fields = ["id", "name", "email", "phone", "website"]
        read_only_fields = ["id"]


class ProjectTierSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectTier
        fields = [
            "min_participants",
            "max_participants",
            "discount_percent",
            "explicit_price",
            "commission_percent",
        ]


class ProjectSerializer(serializers.ModelSerializer):
    """Read serializer for projects with their price steps."""

    developer = DeveloperSerializer(read_only=True)
    tiers = ProjectTierSerializer(many=True, read_only=True)
    stage_display = serializers.CharField(source="get_current_stage_display", read_only=True)

    class Meta:
        model = Project
        fields = [
            "id",
            "slug",
            "developer",
            "name",
            "city",
            "region",
            "description",
            "market_price_baseline",
            "total_capacity",
            "waiting_list_capacity",
            "confirmed_count",
            "waiting_count",
            "issued_positions",
            "current_stage",
            "stage_display",
            "stage_changed_at",
            "pre_registration_deadline",
            "webinar_at",
            "confirmation_deadline",
            "tiers",
            "created_at",
        ]
        read_only_fields = fields


class ProjectCreateSerializer(serializers.Serializer):
    developer = serializers.PrimaryKeyRelatedField(queryset=Developer.objects.all())
    name = serializers.CharField(max_length=200)
    city = serializers.CharField(max_length=100)
    region = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    market_price_baseline = serializers.IntegerField(min_value=1)
    total_capacity = serializers.IntegerField(min_value=1)
    waiting_list_capacity = serializers.IntegerField(min_value=0, required=False, default=0)
    pre_registration_deadline = serializers.DateTimeField(required=False, allow_null=True, default=None)
    webinar_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
    confirmation_deadline = serializers.DateTimeField(required=False, allow_null=True, default=None)
    tiers = TierInputSerializer(many=True)


class RegisterSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")
    budget_min = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    budget_max = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    unit_type_interests = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False, default=list,
    )
    consent_marketing = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ConfirmSerializer(serializers.Serializer):
    consent_data_transfer = serializers.BooleanField()


class AdvanceStageSerializer(serializers.Serializer):
    target = serializers.ChoiceField(choices=FunnelStage.choices, required=False, allow_null=True, default=None)


class RegistrationSerializer(serializers.ModelSerializer):
    project_name = serializers.CharField(source="project.name", read_only=True)
    waiting_list_position = serializers.SerializerMethodField()
    is_cancelled = serializers.BooleanField(read_only=True)

    class Meta:
        model = Registration
        fields = [
            "id",
            "project",
            "project_name",
            "user",
            "full_name",
            "email",
            "phone",
            "position",
            "admission_status",
            "waiting_list_position",
            "price_paid",
            "tier_index",
            "position_in_tier",
            "funnel_status",
            "event_rsvp_at",
            "final_registered_at",
            "budget_min",
            "budget_max",
            "unit_type_interests",
            "consent_marketing",
            "consent_data_transfer",
            "joined_at",
            "cancelled_at",
            "is_cancelled",
        ]
        read_only_fields = fields

    def get_waiting_list_position(self, registration):
        return registration.project.waiting_list_position(registration.position)
