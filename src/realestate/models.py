"""Models for real-estate group purchases."""
from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from admission.models import AdmissionPool, AdmissionRecord
from core.models import TimeStampedModel
from funnel import FunnelStage, FunnelStageEngine
from pricing import Tier, TierTable


class Developer(TimeStampedModel):
    """Property developer (promoteur) running one or more projects."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="developer_profiles",
        verbose_name="compte",
    )
    name = models.CharField("nom", max_length=200)
    email = models.EmailField("e-mail", blank=True)
    phone = models.CharField("telephone", max_length=30, blank=True)
    website = models.URLField("site web", blank=True)

    class Meta:
        verbose_name = "promoteur"
        verbose_name_plural = "promoteurs"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Project(AdmissionPool):
    """A building whose purchasing slots are sold through the registration funnel."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    developer = models.ForeignKey(
        Developer,
        on_delete=models.PROTECT,
        related_name="projects",
        verbose_name="promoteur",
    )
    name = models.CharField("nom", max_length=200)
    slug = models.SlugField("slug", max_length=220, unique=True)
    city = models.CharField("ville", max_length=100, db_index=True)
    region = models.CharField("region", max_length=100, blank=True)
    description = models.TextField("description", blank=True)
    market_price_baseline = models.PositiveIntegerField("prix de reference du marche")
    current_stage = models.CharField(
        "etape",
        max_length=30,
        choices=FunnelStage.choices,
        default=FunnelStage.PRE_REGISTRATION,
        db_index=True,
    )
    stage_changed_at = models.DateTimeField("etape modifiee le", null=True, blank=True)
    pre_registration_deadline = models.DateTimeField("fin de la pre-inscription", null=True, blank=True)
    webinar_at = models.DateTimeField("date du webinaire", null=True, blank=True)
    confirmation_deadline = models.DateTimeField("fin de la fenetre de confirmation", null=True, blank=True)
    is_published = models.BooleanField("publie", default=True)

    class Meta:
        verbose_name = "projet immobilier"
        verbose_name_plural = "projets immobiliers"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.city})"

    def stage_deadlines(self) -> dict:
        return {
            FunnelStage.PRE_REGISTRATION: self.pre_registration_deadline,
            FunnelStage.WEBINAR_SCHEDULED: self.webinar_at,
            FunnelStage.FOMO_CONFIRMATION_WINDOW: self.confirmation_deadline,
            FunnelStage.REGISTRATION_CLOSED: None,
        }

    def current_deadline(self):
        return self.stage_deadlines().get(self.current_stage)

    # -- Admission pool contract -----------------------------------------

    @property
    def base_price(self) -> int:
        return self.market_price_baseline

    def tier_table(self) -> TierTable:
        return TierTable.from_rows(self.tiers.all())

    def is_registration_open(self, now) -> bool:
        return FunnelStageEngine().is_registration_open(
            self.current_stage, now, self.current_deadline(),
        )

    def create_registration(self, join_request, decision):
        """Write the registration; runs with the project row locked.

        Raises
        ------
        ValueError
            If the user already holds an active registration here.
        """
        user = join_request.user
        if user is not None and self.registrations.filter(user=user, cancelled_at__isnull=True).exists():
            raise ValueError("Vous etes deja inscrit sur ce projet.")
        extra = join_request.extra or {}
        quote = decision.quote
        return Registration.objects.create(
            project=self,
            user=join_request.user,
            full_name=join_request.full_name,
            email=join_request.email,
            phone=join_request.phone,
            quantity=join_request.quantity,
            position=decision.position,
            admission_status=decision.status,
            price_paid=decision.price,
            tier_index=quote.tier_index if quote else None,
            position_in_tier=quote.position_in_tier if quote else None,
            budget_min=extra.get("budget_min"),
            budget_max=extra.get("budget_max"),
            unit_type_interests=list(extra.get("unit_type_interests") or []),
            consent_marketing=bool(extra.get("consent_marketing", False)),
            notes=extra.get("notes", ""),
        )


class ProjectTier(TimeStampedModel):
    """A price step of a project (registrant range -> slot price)."""

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="tiers",
        verbose_name="projet",
    )
    min_participants = models.PositiveIntegerField("inscrits min")
    max_participants = models.PositiveIntegerField("inscrits max")
    discount_percent = models.DecimalField(
        "remise (%)",
        max_digits=5,
        decimal_places=2,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    explicit_price = models.PositiveIntegerField("prix a partir de", null=True, blank=True)
    commission_percent = models.DecimalField(
        "commission (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    class Meta:
        verbose_name = "palier projet"
        verbose_name_plural = "paliers projet"
        ordering = ["min_participants"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "min_participants"],
                name="uniq_project_tier_min",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.min_participants}-{self.max_participants} ({self.project})"

    def as_tier(self) -> Tier:
        return Tier(
            min_participants=self.min_participants,
            max_participants=self.max_participants,
            discount_percent=self.discount_percent,
            explicit_price=self.explicit_price,
            commission_percent=self.commission_percent,
        )


class Registration(AdmissionRecord):
    """A registrant's slot on a project and their progress through the funnel."""

    class FunnelStatus(models.TextChoices):
        EARLY_REGISTERED = "EARLY_REGISTERED", "Pre-inscrit"
        EVENT_RSVP = "EVENT_RSVP", "Present au webinaire"
        FINAL_REGISTERED = "FINAL_REGISTERED", "Inscription confirmee"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="registrations",
        verbose_name="projet",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="project_registrations",
        verbose_name="inscrit",
    )
    full_name = models.CharField("nom complet", max_length=150)
    email = models.EmailField("e-mail", blank=True)
    phone = models.CharField("telephone", max_length=30, blank=True)
    funnel_status = models.CharField(
        "avancement",
        max_length=20,
        choices=FunnelStatus.choices,
        default=FunnelStatus.EARLY_REGISTERED,
        db_index=True,
    )
    event_rsvp_at = models.DateTimeField("presence confirmee le", null=True, blank=True)
    final_registered_at = models.DateTimeField("inscription confirmee le", null=True, blank=True)
    budget_min = models.PositiveIntegerField("budget min", null=True, blank=True)
    budget_max = models.PositiveIntegerField("budget max", null=True, blank=True)
    unit_type_interests = models.JSONField("types de logement", default=list, blank=True)
    consent_marketing = models.BooleanField("accepte la prospection", default=False)
    consent_data_transfer = models.BooleanField("accepte le transfert au promoteur", default=False)
    notes = models.TextField("notes", blank=True)

    class Meta:
        verbose_name = "inscription"
        verbose_name_plural = "inscriptions"
        ordering = ["project", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "position"],
                name="uniq_registration_position_per_project",
            ),
            models.UniqueConstraint(
                fields=["project", "user"],
                condition=models.Q(cancelled_at__isnull=True),
                name="uniq_active_registration_per_user",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.position} {self.full_name}"
