"""
Workflow stage computation.

The current stage is always derived from facts (onboarding flag, locked
universities, application tasks). The `current_stage` column on the
profile is only a mirror of the last derived value.
"""

from typing import Any, Optional

from models import StageEnum
from scoring import get_field

STAGE_ORDER = [
    StageEnum.ONBOARDING,
    StageEnum.DISCOVER,
    StageEnum.LOCK_CHOICES,
    StageEnum.APPLICATIONS,
]

STAGE_LABELS = {
    StageEnum.ONBOARDING: "Onboarding",
    StageEnum.DISCOVER: "Discover",
    StageEnum.LOCK_CHOICES: "Lock Choices",
    StageEnum.APPLICATIONS: "Applications",
}

def compute_stage(
    profile: Optional[Any],
    has_locked_universities: bool,
    has_application_tasks: bool = False
) -> StageEnum:
    """
    Derive the current stage. Checks run in a fixed order:
    onboarding flag, then locked universities, then tasks.
    """
    if profile is None or not get_field(profile, "onboarding_completed"):
        return StageEnum.ONBOARDING

    if not has_locked_universities:
        return StageEnum.DISCOVER

    if has_application_tasks:
        return StageEnum.APPLICATIONS

    return StageEnum.LOCK_CHOICES

def needs_stage_sync(profile: Optional[Any], stage: StageEnum) -> bool:
    """True when the persisted stage differs from the computed one."""
    if profile is None:
        return False
    return get_field(profile, "current_stage") != stage.value

def stage_after_lock_change(locked_count_after: int, locked: bool) -> Optional[StageEnum]:
    """
    Stage to persist right away after a lock/unlock.

    Args:
        locked_count_after: Number of locked universities after the change
        locked: True for a lock, False for an unlock

    Returns:
        LOCK_CHOICES on the first lock, DISCOVER when the last lock is
        released, otherwise None
    """
    if locked and locked_count_after == 1:
        return StageEnum.LOCK_CHOICES
    if not locked and locked_count_after == 0:
        return StageEnum.DISCOVER
    return None

def stage_label(stage: StageEnum) -> str:
    return STAGE_LABELS[stage]
