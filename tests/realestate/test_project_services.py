from datetime import timedelta
from unittest import mock

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from admission.models import AdmissionStatus, RejectionReason
from funnel import FunnelStage, StageTransitionError
from realestate.models import Project, Registration
from realestate.services import (
    advance_stage,
    cancel_registration,
    confirm_registration,
    create_project,
    my_status,
    project_summary,
    register_for_project,
    replace_project_tiers,
    rsvp_webinar,
    stage_info,
)


def _register(project, user, **kwargs):
    kwargs.setdefault("full_name", user.get_full_name())
    return register_for_project(project, user, **kwargs)


@pytest.mark.django_db
class TestProjectAuthoring:
    def test_slugs_are_unique(self, developer, project):
        other = create_project(
            developer,
            name=project.name,
            city="Douala",
            market_price_baseline=500_000,
            total_capacity=3,
            tiers=[{"min_participants": 1, "max_participants": 3}],
        )
        assert other.slug != project.slug
        assert other.slug.startswith(project.slug)

    def test_deadlines_must_follow_the_funnel_order(self, developer):
        now = timezone.now()
        with pytest.raises(ValueError):
            create_project(
                developer,
                name="Desordre",
                city="Douala",
                market_price_baseline=500_000,
                total_capacity=3,
                pre_registration_deadline=now + timedelta(days=5),
                webinar_at=now + timedelta(days=2),
                tiers=[{"min_participants": 1, "max_participants": 3}],
            )

    def test_tiers_locked_after_first_registration(self, project, customer_user):
        _register(project, customer_user)
        with pytest.raises(ValueError):
            replace_project_tiers(project, [{"min_participants": 1, "max_participants": 6}])


@pytest.mark.django_db
class TestRegistration:
    def test_early_registration_is_priced_by_position(self, project, customer_user):
        result = _register(
            project,
            customer_user,
            budget_min=800_000,
            budget_max=1_200_000,
            unit_type_interests=["F3"],
            consent_marketing=True,
        )
        assert result.status == AdmissionStatus.CONFIRMED
        assert result.position == 1
        assert result.price == 936_000

        registration = result.registration
        assert registration.funnel_status == Registration.FunnelStatus.EARLY_REGISTERED
        assert registration.unit_type_interests == ["F3"]
        assert registration.consent_marketing is True
        assert registration.consent_data_transfer is False
        assert registration.email == customer_user.email

    def test_duplicate_registration_is_refused(self, project, customer_user):
        _register(project, customer_user)
        with pytest.raises(ValueError, match="deja inscrit"):
            _register(project, customer_user)

    def test_registering_again_after_cancellation(self, project, customer_user):
        first = _register(project, customer_user)
        cancel_registration(first.registration)
        second = _register(project, customer_user)
        assert second.position == 2

    def test_inverted_budget_is_refused(self, project, customer_user):
        with pytest.raises(ValueError):
            _register(project, customer_user, budget_min=2, budget_max=1)

    def test_waiting_list_after_capacity(self, project, make_customer):
        results = [_register(project, make_customer()) for _ in range(9)]
        assert [r.status for r in results[:6]] == [AdmissionStatus.CONFIRMED] * 6
        assert [r.status for r in results[6:8]] == [AdmissionStatus.WAITING_LIST] * 2
        assert results[8].reason == RejectionReason.CAPACITY_EXCEEDED
        assert results[3].tier_index == 1

    def test_registration_closed_during_webinar_stage(self, project, customer_user):
        advance_stage(project)
        project.refresh_from_db()
        result = _register(project, customer_user)
        assert result.status == AdmissionStatus.REJECTED
        assert result.reason == RejectionReason.STAGE_CLOSED

    def test_expired_pre_registration_rejects_without_transition(self, project, customer_user):
        later = project.pre_registration_deadline + timedelta(seconds=1)
        result = _register(project, customer_user, now=later)
        assert result.reason == RejectionReason.STAGE_CLOSED
        project.refresh_from_db()
        assert project.current_stage == FunnelStage.PRE_REGISTRATION

    def test_stale_project_closed_meanwhile_rejects(self, project, customer_user):
        stale = Project.objects.get(pk=project.pk)
        advance_stage(project, FunnelStage.REGISTRATION_CLOSED)

        result = _register(stale, customer_user)

        assert result.reason == RejectionReason.STAGE_CLOSED
        assert not project.registrations.exists()
        assert stale.current_stage == FunnelStage.REGISTRATION_CLOSED
        assert stale.issued_positions == 0

    def test_concurrent_duplicate_is_refused_under_lock(self, project, customer_user):
        _register(project, customer_user)
        # both requests passed the early duplicate check
        with mock.patch("realestate.services.active_registration", return_value=None):
            with pytest.raises(ValueError, match="deja inscrit"):
                _register(project, customer_user)

        project.refresh_from_db()
        assert project.issued_positions == 1
        assert project.registrations.count() == 1

    def test_database_refuses_two_active_registrations(self, project, customer_user):
        _register(project, customer_user)
        with pytest.raises(IntegrityError), transaction.atomic():
            Registration.objects.create(
                project=project,
                user=customer_user,
                full_name="Jean Client",
                position=99,
                admission_status=AdmissionStatus.CONFIRMED,
            )

    def test_registration_reopens_in_confirmation_window(self, project, customer_user):
        advance_stage(project, FunnelStage.FOMO_CONFIRMATION_WINDOW)
        project.refresh_from_db()
        assert _register(project, customer_user).status == AdmissionStatus.CONFIRMED


@pytest.mark.django_db
class TestFunnelProgress:
    def test_rsvp(self, project, customer_user):
        registration = _register(project, customer_user).registration
        registration = rsvp_webinar(registration)
        assert registration.funnel_status == Registration.FunnelStatus.EVENT_RSVP
        assert registration.event_rsvp_at is not None

    def test_rsvp_twice_is_refused(self, project, customer_user):
        registration = _register(project, customer_user).registration
        rsvp_webinar(registration)
        with pytest.raises(ValueError):
            rsvp_webinar(registration)

    def test_rsvp_after_webinar_is_refused(self, project, customer_user):
        registration = _register(project, customer_user).registration
        with pytest.raises(ValueError):
            rsvp_webinar(registration, now=project.webinar_at + timedelta(minutes=1))

    def test_confirmation_needs_the_window(self, project, customer_user):
        registration = _register(project, customer_user).registration
        with pytest.raises(ValueError, match="fenetre"):
            confirm_registration(registration, consent_data_transfer=True)

    def test_confirmation_needs_consent(self, project, customer_user):
        registration = _register(project, customer_user).registration
        advance_stage(project, FunnelStage.FOMO_CONFIRMATION_WINDOW)
        with pytest.raises(ValueError, match="consentement"):
            confirm_registration(registration, consent_data_transfer=False)

    def test_final_confirmation(self, project, customer_user):
        registration = _register(project, customer_user).registration
        rsvp_webinar(registration)
        advance_stage(project, FunnelStage.FOMO_CONFIRMATION_WINDOW)
        registration = confirm_registration(registration, consent_data_transfer=True)
        assert registration.funnel_status == Registration.FunnelStatus.FINAL_REGISTERED
        assert registration.consent_data_transfer is True
        assert registration.final_registered_at is not None

    def test_confirmation_after_deadline_is_refused(self, project, customer_user):
        registration = _register(project, customer_user).registration
        advance_stage(project, FunnelStage.FOMO_CONFIRMATION_WINDOW)
        with pytest.raises(ValueError):
            confirm_registration(
                registration,
                consent_data_transfer=True,
                now=project.confirmation_deadline + timedelta(seconds=1),
            )

    def test_waiting_list_cannot_confirm(self, project, make_customer):
        results = [_register(project, make_customer()) for _ in range(7)]
        advance_stage(project, FunnelStage.FOMO_CONFIRMATION_WINDOW)
        with pytest.raises(ValueError, match="confirmes"):
            confirm_registration(results[6].registration, consent_data_transfer=True)


@pytest.mark.django_db
class TestStageAdministration:
    def test_advance_stage_records_the_change(self, project):
        updated = advance_stage(project)
        assert updated.current_stage == FunnelStage.WEBINAR_SCHEDULED
        assert updated.stage_changed_at is not None

    def test_backward_transition_is_refused(self, project):
        advance_stage(project, FunnelStage.FOMO_CONFIRMATION_WINDOW)
        with pytest.raises(StageTransitionError):
            advance_stage(project, FunnelStage.WEBINAR_SCHEDULED)

    def test_closed_is_terminal(self, project):
        advance_stage(project, FunnelStage.REGISTRATION_CLOSED)
        with pytest.raises(StageTransitionError):
            advance_stage(project)

    def test_stage_info(self, project):
        info = stage_info(project)
        assert info["stage"] == "PRE_REGISTRATION"
        assert info["state"] == "ACTIVE"
        assert info["registration_open"] is True
        assert info["next_stage"] == "WEBINAR_SCHEDULED"
        assert info["seconds_remaining"] > 0

    def test_stage_info_after_deadline(self, project):
        info = stage_info(project, now=project.pre_registration_deadline + timedelta(hours=1))
        assert info["state"] == "EXPIRED"
        assert info["registration_open"] is False


@pytest.mark.django_db
class TestStatusAndSummary:
    def test_my_status_for_unknown_user(self, project, customer_user):
        assert my_status(project, customer_user) is None

    def test_my_status_on_waiting_list(self, project, make_customer):
        users = [make_customer() for _ in range(7)]
        for user in users:
            _register(project, user)
        status = my_status(project, users[6])
        assert status["admission_status"] == AdmissionStatus.WAITING_LIST
        assert status["waiting_list_position"] == 1
        assert status["price"] is None

    def test_my_status_after_cancellation(self, project, customer_user):
        result = _register(project, customer_user)
        cancel_registration(result.registration)
        assert my_status(project, customer_user)["cancelled"] is True

    def test_project_summary(self, project, customer_user):
        _register(project, customer_user)
        project.refresh_from_db()
        summary = project_summary(project)
        assert summary["participants"] == 1
        assert summary["next_position"] == 2
        assert summary["next_price"] == 960_000
        assert summary["participants_to_next_tier"] == 3
        assert summary["stage"]["stage"] == "PRE_REGISTRATION"
