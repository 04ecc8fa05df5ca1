"""Models for retail group-buy deals."""
from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from admission.models import AdmissionPool, AdmissionRecord
from core.models import TimeStampedModel
from funnel import DealWindow
from pricing import Tier, TierTable


class Deal(AdmissionPool):
    """A product sold to a group: the more participants, the lower the tier price."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Brouillon"
        ACTIVE = "ACTIVE", "Actif"
        CLOSED = "CLOSED", "Cloture"
        CANCELLED = "CANCELLED", "Annule"

    class Category(models.TextChoices):
        APARTMENTS = "apartments", "Appartements"
        ELECTRICAL = "electrical", "Electromenager"
        FURNITURE = "furniture", "Mobilier"
        ELECTRONICS = "electronics", "Electronique"
        HOME = "home", "Maison"
        FASHION = "fashion", "Mode"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    supplier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="deals",
        verbose_name="fournisseur",
    )
    name = models.CharField("nom", max_length=200)
    description = models.TextField("description", blank=True)
    category = models.CharField("categorie", max_length=20, choices=Category.choices, db_index=True)
    original_price = models.PositiveIntegerField("prix d'origine")
    target_participants = models.PositiveIntegerField("objectif de participants")
    min_participants = models.PositiveIntegerField(
        "minimum de participants",
        default=1,
        help_text="En dessous de ce nombre a l'echeance, l'offre est annulee.",
    )
    end_time = models.DateTimeField("fin de l'offre", db_index=True)
    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    activated_at = models.DateTimeField("active le", null=True, blank=True)
    closed_at = models.DateTimeField("cloture le", null=True, blank=True)

    class Meta:
        verbose_name = "offre groupee"
        verbose_name_plural = "offres groupees"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.get_status_display()})"

    def clean(self) -> None:
        if self.total_capacity is not None and self.total_capacity < 1:
            raise ValidationError("La capacite totale doit etre d'au moins 1.")
        if self.min_participants and self.total_capacity and self.min_participants > self.total_capacity:
            raise ValidationError("Le minimum de participants depasse la capacite totale.")

    # -- Admission pool contract -----------------------------------------

    @property
    def base_price(self) -> int:
        return self.original_price

    def tier_table(self) -> TierTable:
        return TierTable.from_rows(self.tiers.all())

    def is_registration_open(self, now) -> bool:
        return DealWindow().is_registration_open(
            self.end_time, now, is_active=self.status == self.Status.ACTIVE,
        )

    def create_registration(self, join_request, decision):
        quote = decision.quote
        return Participant.objects.create(
            deal=self,
            user=join_request.user,
            name=join_request.full_name,
            email=join_request.email,
            phone=join_request.phone,
            quantity=join_request.quantity,
            position=decision.position,
            admission_status=decision.status,
            price_paid=decision.price,
            tier_index=quote.tier_index if quote else None,
            position_in_tier=quote.position_in_tier if quote else None,
        )


class DealTier(TimeStampedModel):
    """A discount step of a deal (participant range -> price rule)."""

    deal = models.ForeignKey(
        Deal,
        on_delete=models.CASCADE,
        related_name="tiers",
        verbose_name="offre",
    )
    min_participants = models.PositiveIntegerField("participants min")
    max_participants = models.PositiveIntegerField("participants max")
    discount_percent = models.DecimalField(
        "remise (%)",
        max_digits=5,
        decimal_places=2,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    explicit_price = models.PositiveIntegerField(
        "prix impose",
        null=True,
        blank=True,
        help_text="Remplace le prix calcule a partir de la remise.",
    )
    commission_percent = models.DecimalField(
        "commission (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    class Meta:
        verbose_name = "palier"
        verbose_name_plural = "paliers"
        ordering = ["min_participants"]
        constraints = [
            models.UniqueConstraint(
                fields=["deal", "min_participants"],
                name="uniq_deal_tier_min",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.min_participants}-{self.max_participants} (-{self.discount_percent}%)"

    def as_tier(self) -> Tier:
        return Tier(
            min_participants=self.min_participants,
            max_participants=self.max_participants,
            discount_percent=self.discount_percent,
            explicit_price=self.explicit_price,
            commission_percent=self.commission_percent,
        )


class Participant(AdmissionRecord):
    """A customer's seat (or waiting-list slot) on a deal."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    deal = models.ForeignKey(
        Deal,
        on_delete=models.CASCADE,
        related_name="participants",
        verbose_name="offre",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="participations",
        verbose_name="client",
    )
    name = models.CharField("nom", max_length=150, blank=True)
    email = models.EmailField("e-mail", blank=True)
    phone = models.CharField("telephone", max_length=30, blank=True)

    class Meta:
        verbose_name = "participant"
        verbose_name_plural = "participants"
        ordering = ["deal", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["deal", "position"],
                name="uniq_participant_position_per_deal",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.position} {self.name or self.user or ''}".strip()
