"""Business-logic / service functions for real-estate projects."""
from __future__ import annotations

import logging
from datetime import datetime

from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from admission.controller import AdmissionResult, CapacityAdmissionController, JoinRequest
from admission.models import AdmissionStatus
from admission.services import cancel_admission, pricing_overview
from funnel import FunnelStage, FunnelStageEngine, StageState
from pricing import TierTable
from realestate.models import Project, ProjectTier, Registration

logger = logging.getLogger("groupbuy")

RSVP_STAGES = frozenset({FunnelStage.PRE_REGISTRATION, FunnelStage.WEBINAR_SCHEDULED})


# ---------------------------------------------------------------------------
# Project authoring
# ---------------------------------------------------------------------------

def _unique_slug(name: str) -> str:
    base = slugify(name)[:200] or "projet"
    slug = base
    suffix = 2
    while Project.objects.filter(slug=slug).exists():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def _write_tiers(project: Project, table: TierTable) -> None:
    ProjectTier.objects.bulk_create([
        ProjectTier(
            project=project,
            min_participants=tier.min_participants,
            max_participants=tier.max_participants,
            discount_percent=tier.discount_percent,
            explicit_price=tier.explicit_price,
            commission_percent=tier.commission_percent,
        )
        for tier in table
    ])


@transaction.atomic
def create_project(
    developer,
    *,
    name: str,
    city: str,
    market_price_baseline: int,
    total_capacity: int,
    tiers,
    waiting_list_capacity: int = 0,
    region: str = "",
    description: str = "",
    pre_registration_deadline: datetime | None = None,
    webinar_at: datetime | None = None,
    confirmation_deadline: datetime | None = None,
) -> Project:
    """Create a project in PRE_REGISTRATION with its validated tier table.

    Raises
    ------
    pricing.ConfigurationError
        If the tier table is invalid.
    ValueError
        If the capacity or the deadlines are inconsistent.
    """
    if total_capacity < 1:
        raise ValueError("La capacite totale doit etre d'au moins 1.")
    dated = [d for d in (pre_registration_deadline, webinar_at, confirmation_deadline) if d is not None]
    if dated != sorted(dated):
        raise ValueError("Les echeances doivent se suivre: pre-inscription, webinaire, confirmation.")

    table = TierTable.from_rows(tiers)
    table.check_prices(market_price_baseline)

    project = Project.objects.create(
        developer=developer,
        name=name,
        slug=_unique_slug(name),
        city=city,
        region=region,
        description=description,
        market_price_baseline=market_price_baseline,
        total_capacity=total_capacity,
        waiting_list_capacity=waiting_list_capacity,
        pre_registration_deadline=pre_registration_deadline,
        webinar_at=webinar_at,
        confirmation_deadline=confirmation_deadline,
        stage_changed_at=timezone.now(),
    )
    _write_tiers(project, table)
    logger.info("Project %s created in %s by %s (%d price steps)", project.slug, city, developer, len(table))
    return project


@transaction.atomic
def replace_project_tiers(project: Project, tiers, actor=None) -> TierTable:
    """Replace the tier table of a project nobody has registered on yet.

    Raises
    ------
    ValueError
        If registrations already hold positions.
    pricing.ConfigurationError
        If the new table is invalid.
    """
    project = Project.objects.select_for_update().get(pk=project.pk)
    if project.issued_positions > 0:
        raise ValueError(
            "Impossible de modifier les paliers: des inscriptions existent deja sur ce projet."
        )
    table = TierTable.from_rows(tiers)
    table.check_prices(project.market_price_baseline)
    project.tiers.all().delete()
    _write_tiers(project, table)
    logger.info("Tiers of project %s replaced by %s", project.slug, actor)
    return table


@transaction.atomic
def advance_stage(project: Project, target=None, actor=None, now: datetime | None = None) -> Project:
    """Move *project* strictly forward in the funnel.

    Raises
    ------
    funnel.StageTransitionError
        If the project is closed or *target* is not ahead of its stage.
    """
    now = now or timezone.now()
    project = Project.objects.select_for_update().get(pk=project.pk)
    previous = project.current_stage
    project.current_stage = FunnelStageEngine().advance_stage(previous, target)
    project.stage_changed_at = now
    project.save(update_fields=["current_stage", "stage_changed_at", "updated_at"])
    logger.info(
        "Project %s moved from %s to %s by %s",
        project.slug, previous, project.current_stage, actor,
    )
    return project


# ---------------------------------------------------------------------------
# Registrant funnel
# ---------------------------------------------------------------------------

def active_registration(project: Project, user) -> Registration | None:
    if user is None:
        return None
    return (
        project.registrations
        .filter(user=user, cancelled_at__isnull=True)
        .order_by("position")
        .first()
    )


def register_for_project(
    project: Project,
    user,
    *,
    full_name: str,
    email: str = "",
    phone: str = "",
    budget_min: int | None = None,
    budget_max: int | None = None,
    unit_type_interests=None,
    consent_marketing: bool = False,
    notes: str = "",
    now: datetime | None = None,
    controller: CapacityAdmissionController | None = None,
) -> AdmissionResult:
    """Take a position on *project* (confirmed, waiting list or rejected).

    Raises
    ------
    ValueError
        If the user already holds a registration on this project, or the
        budget range is inverted.
    admission.controller.ConcurrencyConflict
        If the position could not be written even after a retry.
    """
    if active_registration(project, user) is not None:
        raise ValueError("Vous etes deja inscrit sur ce projet.")
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValueError("Le budget minimum depasse le budget maximum.")

    join_request = JoinRequest(
        user=user,
        full_name=full_name,
        email=email or getattr(user, "email", "") or "",
        phone=phone,
        extra={
            "budget_min": budget_min,
            "budget_max": budget_max,
            "unit_type_interests": unit_type_interests or [],
            "consent_marketing": consent_marketing,
            "notes": notes,
        },
    )
    controller = controller or CapacityAdmissionController()
    return controller.admit(project, join_request, now=now)


@transaction.atomic
def rsvp_webinar(registration: Registration, now: datetime | None = None) -> Registration:
    """Record that an early registrant will attend the webinar.

    Raises
    ------
    ValueError
        If the registration is cancelled or already past this step, or the
        webinar has already taken place.
    """
    now = now or timezone.now()
    registration = Registration.objects.select_for_update().select_related("project").get(pk=registration.pk)
    project = registration.project

    if registration.is_cancelled:
        raise ValueError("Cette inscription est annulee.")
    if registration.funnel_status != Registration.FunnelStatus.EARLY_REGISTERED:
        raise ValueError("La presence au webinaire est deja enregistree.")
    if project.current_stage not in RSVP_STAGES:
        raise ValueError("Le webinaire de ce projet a deja eu lieu.")
    if project.webinar_at is not None and now >= project.webinar_at:
        raise ValueError("Le webinaire de ce projet a deja eu lieu.")

    registration.funnel_status = Registration.FunnelStatus.EVENT_RSVP
    registration.event_rsvp_at = now
    registration.save(update_fields=["funnel_status", "event_rsvp_at", "updated_at"])
    logger.info("Registration %s on %s: webinar RSVP", registration.pk, project.slug)
    return registration


@transaction.atomic
def confirm_registration(
    registration: Registration,
    consent_data_transfer: bool,
    now: datetime | None = None,
) -> Registration:
    """Final confirmation of a confirmed registrant during the confirmation window.

    Raises
    ------
    ValueError
        If the window is not open, consent is missing, or the registrant
        is not (or no longer) holding a confirmed position.
    """
    now = now or timezone.now()
    registration = Registration.objects.select_for_update().select_related("project").get(pk=registration.pk)
    project = registration.project

    engine = FunnelStageEngine()
    if (
        project.current_stage != FunnelStage.FOMO_CONFIRMATION_WINDOW
        or engine.stage_state(project.current_stage, now, project.confirmation_deadline) != StageState.ACTIVE
    ):
        raise ValueError("La fenetre de confirmation n'est pas ouverte.")
    if not consent_data_transfer:
        raise ValueError("Le consentement au transfert des donnees au promoteur est obligatoire.")
    if registration.is_cancelled:
        raise ValueError("Cette inscription est annulee.")
    if registration.admission_status != AdmissionStatus.CONFIRMED:
        raise ValueError("Seuls les inscrits confirmes peuvent finaliser leur inscription.")
    if registration.funnel_status == Registration.FunnelStatus.FINAL_REGISTERED:
        raise ValueError("Cette inscription est deja finalisee.")

    registration.funnel_status = Registration.FunnelStatus.FINAL_REGISTERED
    registration.final_registered_at = now
    registration.consent_data_transfer = True
    registration.save(update_fields=[
        "funnel_status", "final_registered_at", "consent_data_transfer", "updated_at",
    ])
    logger.info(
        "Registration %s on %s finalised at position %d",
        registration.pk, project.slug, registration.position,
    )
    return registration


def cancel_registration(registration: Registration, actor=None) -> Registration:
    """Cancel a registration; its position is not handed out again."""
    return cancel_admission(registration, registration.project, actor=actor)


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def stage_info(project: Project, now: datetime | None = None) -> dict:
    now = now or timezone.now()
    snapshot = FunnelStageEngine().snapshot(project.current_stage, now, project.stage_deadlines())
    return {
        "project_id": str(project.pk),
        "stage_label": FunnelStage(project.current_stage).label,
        "stage_changed_at": project.stage_changed_at.isoformat() if project.stage_changed_at else None,
        **snapshot.as_dict(),
    }


def my_status(project: Project, user) -> dict | None:
    """The user's registration on *project*, or None if they never registered."""
    registration = active_registration(project, user)
    if registration is None:
        registration = (
            project.registrations.filter(user=user).order_by("-position").first()
            if user is not None else None
        )
    if registration is None:
        return None
    return {
        "registration_id": str(registration.pk),
        "position": registration.position,
        "admission_status": registration.admission_status,
        "funnel_status": registration.funnel_status,
        "price": registration.price_paid,
        "tier_index": registration.tier_index,
        "position_in_tier": registration.position_in_tier,
        "waiting_list_position": project.waiting_list_position(registration.position),
        "cancelled": registration.is_cancelled,
    }


def project_summary(project: Project, now: datetime | None = None) -> dict:
    """Pricing overview plus funnel stage of a project."""
    return {
        "project_id": str(project.pk),
        "stage": stage_info(project, now),
        **pricing_overview(project),
    }
