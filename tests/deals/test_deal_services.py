from datetime import timedelta

import pytest
from django.utils import timezone

from admission.controller import JoinRequest
from admission.models import AdmissionStatus, RejectionReason
from admission.signals import tier_unlocked
from deals.models import Deal, Participant
from deals.services import (
    activate_deal,
    cancel_participation,
    close_deal,
    close_expired_deals,
    create_deal,
    deal_quote,
    join_deal,
    participant_commission,
    price_simulation,
    replace_tiers,
)
from deals.tasks import close_expired_deals as close_expired_deals_task
from pricing import ConfigurationError


def _join_many(deal, count):
    return [join_deal(deal, JoinRequest(full_name=f"client-{n}")) for n in range(count)]


@pytest.mark.django_db
class TestDealAuthoring:
    def test_create_deal_stores_tiers(self, draft_deal):
        assert draft_deal.status == Deal.Status.DRAFT
        assert draft_deal.tiers.count() == 4
        assert len(draft_deal.tier_table()) == 4

    def test_invalid_tier_table_creates_nothing(self, supplier_user):
        with pytest.raises(ConfigurationError):
            create_deal(
                supplier_user,
                name="Invalide",
                category=Deal.Category.HOME,
                original_price=1000,
                total_capacity=10,
                target_participants=5,
                end_time=timezone.now() + timedelta(days=1),
                tiers=[
                    {"min_participants": 1, "max_participants": 5},
                    {"min_participants": 7, "max_participants": 10},
                ],
            )
        assert not Deal.objects.filter(name="Invalide").exists()

    def test_minimum_above_capacity_is_refused(self, supplier_user):
        with pytest.raises(ValueError):
            create_deal(
                supplier_user,
                name="Trop petit",
                category=Deal.Category.HOME,
                original_price=1000,
                total_capacity=2,
                min_participants=3,
                target_participants=2,
                end_time=timezone.now() + timedelta(days=1),
                tiers=[{"min_participants": 1, "max_participants": 2}],
            )

    def test_tiers_can_be_replaced_before_any_join(self, deal):
        replace_tiers(deal, [{"min_participants": 1, "max_participants": 100, "discount_percent": 20}])
        assert deal.tier_table().first.nominal_price(4500) == 3600

    def test_tiers_are_locked_once_positions_are_issued(self, deal):
        join_deal(deal, JoinRequest(full_name="Awa"))
        with pytest.raises(ValueError, match="deja rejoint"):
            replace_tiers(deal, [{"min_participants": 1, "max_participants": 100}])

    def test_activate_requires_a_draft(self, deal):
        with pytest.raises(ValueError):
            activate_deal(deal)

    def test_activate_refuses_past_end_time(self, draft_deal):
        Deal.objects.filter(pk=draft_deal.pk).update(end_time=timezone.now() - timedelta(minutes=1))
        draft_deal.refresh_from_db()
        with pytest.raises(ValueError):
            activate_deal(draft_deal)


@pytest.mark.django_db
class TestJoinDeal:
    def test_draft_deal_rejects_joins(self, draft_deal):
        result = join_deal(draft_deal, JoinRequest(full_name="Awa"))
        assert result.status == AdmissionStatus.REJECTED
        assert result.reason == RejectionReason.STAGE_CLOSED

    def test_expired_deal_rejects_joins(self, deal):
        later = deal.end_time + timedelta(seconds=1)
        result = join_deal(deal, JoinRequest(full_name="Awa"), now=later)
        assert result.reason == RejectionReason.STAGE_CLOSED
        deal.refresh_from_db()
        assert deal.issued_positions == 0

    def test_capacity_waiting_list_and_rejection(self, deal):
        results = _join_many(deal, 121)
        statuses = [r.status for r in results]
        assert statuses[:100] == [AdmissionStatus.CONFIRMED] * 100
        assert statuses[100:120] == [AdmissionStatus.WAITING_LIST] * 20
        assert statuses[120] == AdmissionStatus.REJECTED
        assert results[120].reason == RejectionReason.CAPACITY_EXCEEDED

        deal.refresh_from_db()
        assert deal.confirmed_count == 100
        assert deal.waiting_count == 20
        assert deal.participants.count() == 120
        assert set(deal.participants.values_list("position", flat=True)) == set(range(1, 121))

    def test_prices_follow_positions(self, deal):
        results = _join_many(deal, 100)
        assert results[0].price == 4388
        assert results[60].position == 61
        assert results[60].price == 3598
        assert results[79].price == 3688
        assert results[99].price == 3782

        participant = Participant.objects.get(deal=deal, position=61)
        assert participant.price_paid == 3598
        assert participant.tier_index == 3
        assert participant.position_in_tier == 1

    def test_tier_unlock_signal_after_commit(self, deal, django_capture_on_commit_callbacks):
        received = []

        def receiver(sender, **kwargs):
            received.append((sender, kwargs["tier_index"], kwargs["position"]))

        tier_unlocked.connect(receiver, sender=Deal, weak=False)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                _join_many(deal, 21)
        finally:
            tier_unlocked.disconnect(receiver, sender=Deal)
        assert received == [(Deal, 1, 21)]


@pytest.mark.django_db
class TestDealDisplay:
    def test_quote_reports_window_and_next_price(self, deal):
        _join_many(deal, 3)
        deal.refresh_from_db()
        quote = deal_quote(deal)
        assert quote["window"] == "OPEN"
        assert quote["participants"] == 3
        assert quote["next_position"] == 4
        assert quote["participants_to_next_tier"] == 18
        assert quote["original_price"] == 4500

    def test_price_simulation(self, deal):
        rows = price_simulation(deal, 3)
        assert rows[0]["price"] == 3598
        assert rows[-1]["price"] == 3782

    def test_price_simulation_unknown_tier(self, deal):
        with pytest.raises(IndexError):
            price_simulation(deal, 9)

    def test_participant_commission(self, deal):
        result = join_deal(deal, JoinRequest(full_name="Awa"))
        split = participant_commission(result.registration)
        assert split.platform_cut == 219
        assert split.net_to_supplier == 4388 - 219

    def test_waiting_list_has_no_commission(self, small_deal):
        _join_many(small_deal, 2)
        waiting = join_deal(small_deal, JoinRequest(full_name="Tard"))
        assert participant_commission(waiting.registration) is None

    def test_cancel_participation(self, deal):
        result = join_deal(deal, JoinRequest(full_name="Awa"))
        participant = cancel_participation(result.registration)
        assert participant.is_cancelled
        deal.refresh_from_db()
        assert deal.confirmed_count == 0


@pytest.mark.django_db
class TestDealClosure:
    def test_open_deal_is_not_closed(self, deal):
        with pytest.raises(ValueError, match="encore ouverte"):
            close_deal(deal)

    def test_deal_with_enough_participants_closes(self, deal):
        _join_many(deal, 2)
        closed = close_deal(deal, now=deal.end_time + timedelta(seconds=1))
        assert closed.status == Deal.Status.CLOSED
        assert closed.closed_at is not None

    def test_deal_below_minimum_is_cancelled(self, deal):
        _join_many(deal, 1)
        closed = close_deal(deal, now=deal.end_time + timedelta(seconds=1))
        assert closed.status == Deal.Status.CANCELLED
        assert closed.confirmed_count == 0
        assert not deal.participants.filter(cancelled_at__isnull=True).exists()

    def test_force_close_before_end_time(self, deal):
        _join_many(deal, 2)
        assert close_deal(deal, force=True).status == Deal.Status.CLOSED

    def test_sweep_closes_only_expired_deals(self, deal, small_deal):
        Deal.objects.filter(pk=deal.pk).update(end_time=timezone.now() - timedelta(minutes=1))
        assert close_expired_deals() == 1
        deal.refresh_from_db()
        small_deal.refresh_from_db()
        assert deal.status == Deal.Status.CANCELLED
        assert small_deal.status == Deal.Status.ACTIVE

    def test_celery_task_runs_the_sweep(self, deal):
        Deal.objects.filter(pk=deal.pk).update(end_time=timezone.now() - timedelta(minutes=1))
        assert close_expired_deals_task.delay().get() == 1
