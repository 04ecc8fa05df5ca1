"""Time-boxed registration stages.

Deadline expiry is derived at read time: a stage whose deadline has passed
is reported EXPIRED without any scheduled job having moved it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from django.db import models

logger = logging.getLogger(__name__)


class FunnelStage(models.TextChoices):
    PRE_REGISTRATION = "PRE_REGISTRATION", "Pre-inscription"
    WEBINAR_SCHEDULED = "WEBINAR_SCHEDULED", "Webinaire planifie"
    FOMO_CONFIRMATION_WINDOW = "FOMO_CONFIRMATION_WINDOW", "Fenetre de confirmation"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED", "Inscriptions closes"


class StageState(models.TextChoices):
    ACTIVE = "ACTIVE", "En cours"
    EXPIRED = "EXPIRED", "Expire"
    CLOSED = "CLOSED", "Clos"


STAGE_ORDER = (
    FunnelStage.PRE_REGISTRATION,
    FunnelStage.WEBINAR_SCHEDULED,
    FunnelStage.FOMO_CONFIRMATION_WINDOW,
    FunnelStage.REGISTRATION_CLOSED,
)

REGISTRATION_STAGES = frozenset({
    FunnelStage.PRE_REGISTRATION,
    FunnelStage.FOMO_CONFIRMATION_WINDOW,
})


class StageTransitionError(ValueError):
    """Raised on a backward, repeated or post-terminal stage transition."""


@dataclass(frozen=True)
class StageSnapshot:
    stage: FunnelStage
    state: StageState
    deadline: datetime | None
    seconds_remaining: int | None
    next_stage: FunnelStage | None
    registration_open: bool

    def as_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "state": self.state.value,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "seconds_remaining": self.seconds_remaining,
            "next_stage": self.next_stage.value if self.next_stage else None,
            "registration_open": self.registration_open,
        }


def _rank(stage) -> int:
    return STAGE_ORDER.index(FunnelStage(stage))


class FunnelStageEngine:
    """Single source of truth for stage ordering and registration gating."""

    initial_stage = FunnelStage.PRE_REGISTRATION
    terminal_stage = FunnelStage.REGISTRATION_CLOSED

    def stage_state(self, stage, now: datetime, deadline: datetime | None = None) -> StageState:
        stage = FunnelStage(stage)
        if stage == self.terminal_stage:
            return StageState.CLOSED
        if deadline is not None and now >= deadline:
            return StageState.EXPIRED
        return StageState.ACTIVE

    def is_registration_open(self, stage, now: datetime, deadline: datetime | None = None) -> bool:
        stage = FunnelStage(stage)
        if stage not in REGISTRATION_STAGES:
            return False
        return self.stage_state(stage, now, deadline) == StageState.ACTIVE

    def next_stage(self, stage) -> FunnelStage | None:
        rank = _rank(stage)
        if rank + 1 < len(STAGE_ORDER):
            return STAGE_ORDER[rank + 1]
        return None

    def advance_stage(self, current, target=None) -> FunnelStage:
        """Return the stage after *current*, or *target* if it lies strictly ahead.

        Raises
        ------
        StageTransitionError
            If *current* is terminal or *target* is not ahead of *current*.
        """
        current = FunnelStage(current)
        if current == self.terminal_stage:
            raise StageTransitionError("Les inscriptions sont deja closes.")
        if target is None:
            target = self.next_stage(current)
        target = FunnelStage(target)
        if _rank(target) <= _rank(current):
            raise StageTransitionError(
                f"Transition impossible de {current.label} vers {target.label}: "
                "les etapes avancent uniquement."
            )
        logger.info("Funnel stage %s -> %s", current, target)
        return target

    def snapshot(
        self,
        stage,
        now: datetime,
        deadlines: Mapping[str, datetime | None] | None = None,
    ) -> StageSnapshot:
        stage = FunnelStage(stage)
        deadline = (deadlines or {}).get(stage)
        state = self.stage_state(stage, now, deadline)
        remaining = None
        if deadline is not None and state == StageState.ACTIVE:
            remaining = int((deadline - now).total_seconds())
        return StageSnapshot(
            stage=stage,
            state=state,
            deadline=deadline,
            seconds_remaining=remaining,
            next_stage=self.next_stage(stage),
            registration_open=self.is_registration_open(stage, now, deadline),
        )


# ---------------------------------------------------------------------------
# Retail deals: OPEN until the end time, then CLOSED
# ---------------------------------------------------------------------------

class DealWindowState(models.TextChoices):
    OPEN = "OPEN", "Ouvert"
    CLOSED = "CLOSED", "Ferme"


class DealWindow:
    """Two-state gate for retail deals driven by a single end time."""

    def state(self, end_time: datetime | None, now: datetime, is_active: bool = True) -> DealWindowState:
        if not is_active:
            return DealWindowState.CLOSED
        if end_time is not None and now >= end_time:
            return DealWindowState.CLOSED
        return DealWindowState.OPEN

    def is_registration_open(self, end_time: datetime | None, now: datetime, is_active: bool = True) -> bool:
        return self.state(end_time, now, is_active) == DealWindowState.OPEN

    def seconds_remaining(self, end_time: datetime | None, now: datetime) -> int | None:
        if end_time is None:
            return None
        return max(0, int((end_time - now).total_seconds()))
