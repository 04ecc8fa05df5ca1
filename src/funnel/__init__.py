from funnel.stages import (
    DealWindow,
    DealWindowState,
    FunnelStage,
    FunnelStageEngine,
    StageSnapshot,
    StageState,
    StageTransitionError,
)

__all__ = [
    "DealWindow",
    "DealWindowState",
    "FunnelStage",
    "FunnelStageEngine",
    "StageSnapshot",
    "StageState",
    "StageTransitionError",
]
