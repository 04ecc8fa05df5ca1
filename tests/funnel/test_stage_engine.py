from datetime import datetime, timedelta, timezone

import pytest

from funnel import (
    DealWindow,
    DealWindowState,
    FunnelStage,
    FunnelStageEngine,
    StageState,
    StageTransitionError,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    return FunnelStageEngine()


class TestRegistrationGate:
    @pytest.mark.parametrize(
        "stage, expected",
        [
            (FunnelStage.PRE_REGISTRATION, True),
            (FunnelStage.WEBINAR_SCHEDULED, False),
            (FunnelStage.FOMO_CONFIRMATION_WINDOW, True),
            (FunnelStage.REGISTRATION_CLOSED, False),
        ],
    )
    def test_open_stages_without_deadline(self, engine, stage, expected):
        assert engine.is_registration_open(stage, NOW) is expected

    def test_deadline_in_the_future_keeps_stage_open(self, engine):
        deadline = NOW + timedelta(hours=1)
        assert engine.is_registration_open(FunnelStage.PRE_REGISTRATION, NOW, deadline) is True

    def test_expired_deadline_closes_without_any_transition(self, engine):
        deadline = NOW - timedelta(seconds=1)
        assert engine.stage_state(FunnelStage.FOMO_CONFIRMATION_WINDOW, NOW, deadline) == StageState.EXPIRED
        assert engine.is_registration_open(FunnelStage.FOMO_CONFIRMATION_WINDOW, NOW, deadline) is False

    def test_deadline_reached_exactly_is_expired(self, engine):
        assert engine.stage_state(FunnelStage.PRE_REGISTRATION, NOW, NOW) == StageState.EXPIRED

    def test_closed_stage_is_closed_regardless_of_deadline(self, engine):
        later = NOW + timedelta(days=1)
        assert engine.stage_state(FunnelStage.REGISTRATION_CLOSED, NOW, later) == StageState.CLOSED

    def test_plain_string_stage_is_accepted(self, engine):
        assert engine.is_registration_open("PRE_REGISTRATION", NOW) is True


class TestAdvanceStage:
    def test_default_is_the_next_stage(self, engine):
        assert engine.advance_stage(FunnelStage.PRE_REGISTRATION) == FunnelStage.WEBINAR_SCHEDULED
        assert engine.advance_stage(FunnelStage.WEBINAR_SCHEDULED) == FunnelStage.FOMO_CONFIRMATION_WINDOW

    def test_skipping_forward_is_allowed(self, engine):
        target = engine.advance_stage(FunnelStage.PRE_REGISTRATION, FunnelStage.REGISTRATION_CLOSED)
        assert target == FunnelStage.REGISTRATION_CLOSED

    def test_backward_transition_is_refused(self, engine):
        with pytest.raises(StageTransitionError):
            engine.advance_stage(FunnelStage.FOMO_CONFIRMATION_WINDOW, FunnelStage.PRE_REGISTRATION)

    def test_same_stage_is_refused(self, engine):
        with pytest.raises(StageTransitionError):
            engine.advance_stage(FunnelStage.WEBINAR_SCHEDULED, FunnelStage.WEBINAR_SCHEDULED)

    def test_closed_is_terminal(self, engine):
        with pytest.raises(StageTransitionError):
            engine.advance_stage(FunnelStage.REGISTRATION_CLOSED)

    def test_next_stage_of_terminal_is_none(self, engine):
        assert engine.next_stage(FunnelStage.REGISTRATION_CLOSED) is None


class TestSnapshot:
    def test_snapshot_reports_countdown(self, engine):
        deadlines = {FunnelStage.PRE_REGISTRATION: NOW + timedelta(minutes=5)}
        snapshot = engine.snapshot(FunnelStage.PRE_REGISTRATION, NOW, deadlines)
        assert snapshot.state == StageState.ACTIVE
        assert snapshot.seconds_remaining == 300
        assert snapshot.next_stage == FunnelStage.WEBINAR_SCHEDULED
        assert snapshot.registration_open is True

    def test_snapshot_of_expired_stage(self, engine):
        deadlines = {FunnelStage.FOMO_CONFIRMATION_WINDOW: NOW - timedelta(minutes=5)}
        data = engine.snapshot(FunnelStage.FOMO_CONFIRMATION_WINDOW, NOW, deadlines).as_dict()
        assert data["state"] == "EXPIRED"
        assert data["seconds_remaining"] is None
        assert data["registration_open"] is False


class TestDealWindow:
    def test_open_before_end_time(self):
        assert DealWindow().state(NOW + timedelta(hours=1), NOW) == DealWindowState.OPEN

    def test_closed_at_end_time(self):
        assert DealWindow().state(NOW, NOW) == DealWindowState.CLOSED

    def test_inactive_deal_is_closed(self):
        assert DealWindow().is_registration_open(NOW + timedelta(hours=1), NOW, is_active=False) is False

    def test_seconds_remaining_never_negative(self):
        assert DealWindow().seconds_remaining(NOW - timedelta(hours=1), NOW) == 0
        assert DealWindow().seconds_remaining(NOW + timedelta(seconds=90), NOW) == 90
