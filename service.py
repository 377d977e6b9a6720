"""
Orchestration layer: combines stores, stage computation, scoring and the
AI gateway for the API endpoints.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

import crud
import prompts
from gemini_client import AIGatewayError, generate_json, generate_text, to_gemini_history
from models import StageEnum, UserProfile
from scoring import calculate_profile_strength, calculate_profile_strength_detailed, calculate_task_progress
from stages import compute_stage, needs_stage_sync, stage_after_lock_change, stage_label

logger = logging.getLogger(__name__)

async def sync_stage_to_database(session_factory: Callable[[], Session], email: str, stage: StageEnum) -> bool:
    """
    Persist the stage mirror on the profile.

    Runs the write in a worker thread with its own session. Failures are
    logged and reported as False, never raised.
    """
    def _write() -> bool:
        db = session_factory()
        try:
            return crud.update_current_stage(db, email, stage)
        finally:
            db.close()

    try:
        updated = await asyncio.to_thread(_write)
    except Exception as e:
        logger.error(f"[STAGE] Failed to sync stage '{stage.value}' for {email}: {str(e)}")
        return False

    if updated:
        logger.info(f"[STAGE] Synced stage '{stage.value}' for {email}")
    else:
        logger.warning(f"[STAGE] No profile to sync for {email}")
    return updated

def resolve_stage(db: Session, profile: Optional[UserProfile]) -> StageEnum:
    """Compute the stage from the latest locked-university and task counts."""
    if profile is None:
        return compute_stage(None, False, False)

    has_locked = crud.count_locked_universities(db, profile.id) > 0
    has_tasks = crud.has_application_tasks(db, profile.id)
    return compute_stage(profile, has_locked, has_tasks)

def build_dashboard(db: Session, profile: UserProfile) -> Dict:
    """Stats, stage and strength metrics for the dashboard."""
    universities = crud.get_user_universities(db, profile.id)
    shortlisted_count = sum(1 for u in universities if u.is_shortlisted)
    locked_count = sum(1 for u in universities if u.is_locked)
    has_tasks = crud.has_application_tasks(db, profile.id)

    stage = compute_stage(profile, locked_count > 0, has_tasks)

    return {
        "current_stage": stage,
        "stage_label": stage_label(stage),
        "stats": {
            "shortlisted_count": shortlisted_count,
            "locked_count": locked_count,
            "has_locked_universities": locked_count > 0,
            "total_universities": len(universities)
        },
        "profile_strength": calculate_profile_strength(profile),
        "readiness": calculate_profile_strength_detailed(profile),
        "needs_sync": needs_stage_sync(profile, stage)
    }

async def change_university_lock(
    db: Session,
    session_factory: Callable[[], Session],
    profile: UserProfile,
    university_id: int,
    locked: bool
) -> Dict:
    """
    Lock or unlock a university. The first lock and the last unlock
    persist the new stage immediately.
    """
    university = crud.set_university_locked(db, profile.id, university_id, locked)
    locked_count = crud.count_locked_universities(db, profile.id)
    logger.info(f"[LOCK] {'Locked' if locked else 'Unlocked'} university {university_id} for {profile.email}, locked={locked_count}")

    stage = stage_after_lock_change(locked_count, locked)
    if stage is not None:
        await sync_stage_to_database(session_factory, profile.email, stage)

    return {
        "university": university,
        "locked_count": locked_count,
        "stage_synced": stage
    }

def group_tasks_by_category(tasks: List) -> Dict[str, List]:
    grouped = {}
    for task in tasks:
        grouped.setdefault(task.category, []).append(task)
    return grouped

def build_task_overview(db: Session, profile: UserProfile) -> Dict:
    tasks = crud.get_tasks(db, profile.id)
    return {
        "tasks": tasks,
        "tasks_by_category": group_tasks_by_category(tasks),
        **calculate_task_progress(tasks)
    }

def generate_application_tasks(db: Session, profile: UserProfile, regenerate: bool = False) -> Dict:
    """
    Generate application tasks for the locked universities.

    Raises:
        ValueError: no university is locked
        AIGatewayError: gateway failure or malformed answer
    """
    locked = crud.get_locked_universities(db, profile.id)
    if not locked:
        raise ValueError("No locked universities found. Lock at least one university first.")

    if crud.has_application_tasks(db, profile.id):
        if not regenerate:
            logger.info(f"[TASKS] Tasks already generated for {profile.email}")
            return {"message": "Tasks already generated", "regenerate": False, "tasks": []}
        crud.clear_user_tasks(db, profile.id)

    result = generate_json(prompts.build_tasks_prompt(profile, locked), prompts.TASKS_PROMPT)
    tasks_data = result.get("tasks") if isinstance(result, dict) else None
    if not isinstance(tasks_data, list):
        raise AIGatewayError("Invalid AI response format")

    tasks_data = [t for t in tasks_data if isinstance(t, dict) and t.get("title")]
    tasks = crud.create_tasks(db, profile.id, tasks_data)

    return {
        "message": f"Generated {len(tasks)} application tasks",
        "regenerate": regenerate,
        "tasks": tasks
    }

RECOMMENDATION_FILTER_FIELDS = {
    "country": "country",
    "category": "category",
    "degree_type": "degree_type",
    "field": "field_of_study",
    "competition_level": "acceptance_likelihood",
}

def matches_filters(university: Dict, filters: Optional[Dict]) -> bool:
    """
    Exact match on every set filter. `max_budget` caps tuition plus living
    costs, missing costs counting as 0.
    """
    filters = filters or {}
    for filter_key, field in RECOMMENDATION_FILTER_FIELDS.items():
        expected = filters.get(filter_key)
        if expected and university.get(field) != expected:
            return False

    max_budget = filters.get("max_budget")
    if max_budget is not None:
        total = (university.get("tuition_per_year") or 0) + (university.get("living_cost_per_year") or 0)
        if total > max_budget:
            return False
    return True

def recommend_universities(profile: UserProfile, filters: Optional[Dict] = None) -> List[Dict]:
    """Ask the gateway for dream/target/safe recommendations, then apply the filters."""
    logger.info(f"[AI] Requesting university recommendations for {profile.email}")
    universities = generate_json(
        prompts.build_recommendations_prompt(profile, filters),
        prompts.RECOMMENDATIONS_PROMPT
    )
    if not isinstance(universities, list):
        raise AIGatewayError("Failed to parse university recommendations")

    matching = [u for u in universities if isinstance(u, dict) and matches_filters(u, filters)]
    logger.info(f"[AI] Generated {len(universities)} university recommendations, {len(matching)} match the filters")
    return matching

def counsel(db: Session, profile: Optional[UserProfile], messages: List[Dict]) -> str:
    """Answer a counsellor chat with profile and stage context."""
    stage = resolve_stage(db, profile)
    shortlisted = crud.get_shortlisted_universities(db, profile.id) if profile else []
    locked = [u for u in shortlisted if u.is_locked]

    system_prompt = prompts.get_counsellor_prompt(profile, stage.value, shortlisted, locked)
    return generate_text(to_gemini_history(messages), system_prompt)
