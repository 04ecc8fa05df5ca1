"""Abstract models shared by retail deals and real-estate projects."""
from __future__ import annotations

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from core.models import TimeStampedModel


class AdmissionStatus(models.TextChoices):
    CONFIRMED = "CONFIRMED", "Confirme"
    WAITING_LIST = "WAITING_LIST", "Liste d'attente"
    REJECTED = "REJECTED", "Refuse"


class RejectionReason(models.TextChoices):
    STAGE_CLOSED = "STAGE_CLOSED", "Inscriptions fermees"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED", "Capacite atteinte"


RECORDED_STATUSES = [
    (AdmissionStatus.CONFIRMED.value, AdmissionStatus.CONFIRMED.label),
    (AdmissionStatus.WAITING_LIST.value, AdmissionStatus.WAITING_LIST.label),
]


class AdmissionPool(TimeStampedModel):
    """A capacity-limited pool of seats with its own position sequence.

    ``issued_positions`` only ever grows: it is the sequence handing out
    positions. ``confirmed_count`` / ``waiting_count`` are the effective
    occupancy shown to users and go down on cancellation.

    Concrete subclasses provide ``base_price``, ``tier_table()``,
    ``is_registration_open(now)`` and ``create_registration(...)``.
    """

    total_capacity = models.PositiveIntegerField("capacite totale")
    waiting_list_capacity = models.PositiveIntegerField("capacite liste d'attente", default=0)
    issued_positions = models.PositiveIntegerField(
        "positions attribuees",
        default=0,
        editable=False,
        help_text="Compteur monotone; une position n'est jamais reattribuee.",
    )
    confirmed_count = models.PositiveIntegerField("participants confirmes", default=0, editable=False)
    waiting_count = models.PositiveIntegerField("en liste d'attente", default=0, editable=False)
    platform_commission_percent = models.DecimalField(
        "commission plateforme (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Laissez vide pour utiliser la commission par defaut de la plateforme.",
    )

    class Meta:
        abstract = True

    def lock_for_admission(self):
        """Reload the pool row under a lock held until the transaction ends.

        Admission decides on the returned copy, so a close or a stage change
        committed after *self* was loaded is seen before any position is issued.
        """
        return type(self).objects.select_for_update().get(pk=self.pk)

    def take_next_rank(self) -> int:
        """Atomically read-and-increment the position sequence.

        Returns the zero-based rank of the caller. The row stays locked
        until the surrounding transaction ends, so concurrent joins on the
        same pool are serialized.
        """
        model = type(self)
        with transaction.atomic():
            locked = model.objects.select_for_update().only("pk", "issued_positions").get(pk=self.pk)
            rank = locked.issued_positions
            model.objects.filter(pk=self.pk).update(issued_positions=F("issued_positions") + 1)
        self.issued_positions = rank + 1
        return rank

    def adjust_occupancy(self, status: str, delta: int) -> None:
        field = "confirmed_count" if status == AdmissionStatus.CONFIRMED else "waiting_count"
        type(self).objects.filter(pk=self.pk).update(**{field: F(field) + delta})
        self.refresh_from_db(fields=[field])

    @property
    def remaining_capacity(self) -> int:
        return max(0, self.total_capacity - self.issued_positions)

    @property
    def remaining_waiting_list(self) -> int:
        used = max(0, self.issued_positions - self.total_capacity)
        return max(0, self.waiting_list_capacity - used)

    def waiting_list_position(self, position: int) -> int | None:
        if position <= self.total_capacity:
            return None
        return position - self.total_capacity


class AdmissionRecord(TimeStampedModel):
    """One admitted join: a confirmed seat or a waiting-list slot."""

    position = models.PositiveIntegerField("position")
    admission_status = models.CharField(
        "statut d'admission",
        max_length=20,
        choices=RECORDED_STATUSES,
        db_index=True,
    )
    price_paid = models.PositiveIntegerField(
        "prix",
        null=True,
        blank=True,
        help_text="Prix unitaire fige a l'admission; vide en liste d'attente.",
    )
    quantity = models.PositiveIntegerField("quantite", default=1)
    tier_index = models.PositiveSmallIntegerField("palier", null=True, blank=True)
    position_in_tier = models.PositiveIntegerField("position dans le palier", null=True, blank=True)
    joined_at = models.DateTimeField("rejoint le", default=timezone.now)
    cancelled_at = models.DateTimeField("annule le", null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ["position"]

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    @property
    def is_confirmed(self) -> bool:
        return self.admission_status == AdmissionStatus.CONFIRMED and not self.is_cancelled

    @property
    def total_amount(self) -> int | None:
        if self.price_paid is None:
            return None
        return self.price_paid * self.quantity
