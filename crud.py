"""
CRUD operations for database models.
"""

from sqlalchemy.orm import Session
from sqlalchemy import and_, func
from models import UserProfile, University, ApplicationTask, StageEnum, TaskCategory, TaskPriority
from validation import fields_for_steps, TOTAL_STEPS
from typing import List, Optional, Dict
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

PROFILE_DATA_FIELDS = fields_for_steps(TOTAL_STEPS)

class NotFoundError(LookupError):
    """Requested row does not exist for this user."""

def _now():
    return datetime.now(timezone.utc)

def _clean_value(value):
    """Empty strings and empty lists are stored as NULL."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return None
    return value

def _enum_value(enum_cls, value, default):
    """Known enum value or the default."""
    try:
        return enum_cls(value).value
    except ValueError:
        return default.value

# User Profile operations
def get_user_by_email(db: Session, email: str) -> Optional[UserProfile]:
    """Get user profile by email."""
    return db.query(UserProfile).filter(UserProfile.email == email).first()

def require_profile(db: Session, email: str) -> UserProfile:
    """Get user profile by email or raise NotFoundError."""
    profile = get_user_by_email(db, email)
    if not profile:
        raise NotFoundError("User not found")
    return profile

def get_or_create_user_profile(db: Session, email: str, name: Optional[str] = None) -> UserProfile:
    """
    Get or create user profile (UPSERT pattern).
    A new profile starts empty, at onboarding step 1.
    """
    try:
        profile = get_user_by_email(db, email)
        if profile:
            return profile

        profile = UserProfile(
            email=email,
            name=name,
            onboarding_step=1,
            onboarding_completed=False,
            current_stage=StageEnum.ONBOARDING.value
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info(f"[PROFILE] Created profile for {email}")
        return profile
    except Exception as e:
        logger.error(f"[PROFILE] get_or_create_user_profile failed: {str(e)}")
        db.rollback()
        raise

def save_onboarding_progress(
    db: Session,
    email: str,
    step: int,
    data: Dict,
    completed: bool = False,
    name: Optional[str] = None
) -> UserProfile:
    """
    Save onboarding wizard progress.

    Writes every field group up to `step` (step 1 academics, 2 goals,
    3 budget, 4 exams), records the step, and sets the stage mirror to
    DISCOVER once onboarding is completed.
    """
    profile = get_or_create_user_profile(db, email, name)
    try:
        for field in fields_for_steps(step):
            setattr(profile, field, _clean_value(data.get(field)))

        if name:
            profile.name = name
        profile.onboarding_step = step
        profile.onboarding_completed = completed
        profile.current_stage = (StageEnum.DISCOVER if completed else StageEnum.ONBOARDING).value

        db.commit()
        db.refresh(profile)
        logger.info(f"[ONBOARDING] Saved step {step} for {email} (completed={completed})")
        return profile
    except Exception as e:
        logger.error(f"[ONBOARDING] save_onboarding_progress failed: {str(e)}")
        db.rollback()
        raise

def update_profile_fields(db: Session, profile: UserProfile, data: Dict) -> UserProfile:
    """Update all editable profile fields."""
    try:
        for field in PROFILE_DATA_FIELDS:
            setattr(profile, field, _clean_value(data.get(field)))
        db.commit()
        db.refresh(profile)
        return profile
    except Exception as e:
        logger.error(f"[PROFILE] update_profile_fields failed: {str(e)}")
        db.rollback()
        raise

def update_current_stage(db: Session, email: str, stage: StageEnum) -> bool:
    """
    Persist the stage mirror on the profile.
    Returns False if the profile does not exist.
    """
    try:
        updated = db.query(UserProfile).filter(UserProfile.email == email).update(
            {"current_stage": stage.value}
        )
        db.commit()
        return updated > 0
    except Exception as e:
        logger.error(f"[STAGE] update_current_stage failed: {str(e)}")
        db.rollback()
        raise

# University operations
def get_user_universities(db: Session, user_id: int) -> List[University]:
    """All universities stored for a user."""
    return db.query(University).filter(University.user_id == user_id).all()

def get_shortlisted_universities(db: Session, user_id: int) -> List[University]:
    """Shortlisted universities, ordered by category."""
    return db.query(University).filter(
        and_(
            University.user_id == user_id,
            University.is_shortlisted == True
        )
    ).order_by(University.category.asc(), University.id.asc()).all()

def get_locked_universities(db: Session, user_id: int) -> List[University]:
    return db.query(University).filter(
        and_(
            University.user_id == user_id,
            University.is_locked == True
        )
    ).all()

def count_locked_universities(db: Session, user_id: int) -> int:
    """Number of universities the user has locked."""
    return db.query(func.count(University.id)).filter(
        and_(
            University.user_id == user_id,
            University.is_locked == True
        )
    ).scalar() or 0

def add_to_shortlist(db: Session, user_id: int, university_data: Dict) -> University:
    """Add a university to the user's shortlist (never locked on insert)."""
    try:
        university = University(
            user_id=user_id,
            is_shortlisted=True,
            is_locked=False,
            **university_data
        )
        db.add(university)
        db.commit()
        db.refresh(university)
        return university
    except Exception as e:
        logger.error(f"[SHORTLIST] add_to_shortlist failed: {str(e)}")
        db.rollback()
        raise

def get_user_university(db: Session, user_id: int, university_id: int) -> University:
    university = db.query(University).filter(
        and_(
            University.user_id == user_id,
            University.id == university_id
        )
    ).first()
    if not university:
        raise NotFoundError("University not found")
    return university

def remove_university(db: Session, user_id: int, university_id: int):
    """Delete a university from the user's list."""
    university = get_user_university(db, user_id, university_id)
    try:
        db.delete(university)
        db.commit()
    except Exception as e:
        logger.error(f"[SHORTLIST] remove_university failed: {str(e)}")
        db.rollback()
        raise

def set_university_locked(db: Session, user_id: int, university_id: int, locked: bool) -> University:
    """Lock or unlock a shortlisted university."""
    university = get_user_university(db, user_id, university_id)
    if locked and not university.is_shortlisted:
        raise ValueError("University not in shortlist")

    try:
        university.is_locked = locked
        university.locked_at = _now() if locked else None
        db.commit()
        db.refresh(university)
        return university
    except Exception as e:
        logger.error(f"[LOCK] set_university_locked failed: {str(e)}")
        db.rollback()
        raise

# Task operations
def has_application_tasks(db: Session, user_id: int) -> bool:
    """True if at least one application task exists for the user."""
    return db.query(ApplicationTask.id).filter(ApplicationTask.user_id == user_id).first() is not None

def get_tasks(db: Session, user_id: int) -> List[ApplicationTask]:
    """All tasks for a user ordered by sort_order."""
    return db.query(ApplicationTask).filter(
        ApplicationTask.user_id == user_id
    ).order_by(ApplicationTask.sort_order.asc(), ApplicationTask.id.asc()).all()

def create_tasks(db: Session, user_id: int, tasks_data: List[Dict]) -> List[ApplicationTask]:
    """Insert generated tasks keeping their order."""
    try:
        tasks = []
        for index, task_data in enumerate(tasks_data):
            task = ApplicationTask(
                user_id=user_id,
                university_id=None,
                title=task_data["title"],
                description=task_data.get("description"),
                category=_enum_value(TaskCategory, task_data.get("category"), TaskCategory.OTHER),
                priority=_enum_value(TaskPriority, task_data.get("priority"), TaskPriority.MEDIUM),
                due_date=task_data.get("due_date") or None,
                is_ai_generated=True,
                sort_order=index
            )
            db.add(task)
            tasks.append(task)
        db.commit()
        for task in tasks:
            db.refresh(task)
        logger.info(f"[TASKS] Created {len(tasks)} tasks for user {user_id}")
        return tasks
    except Exception as e:
        logger.error(f"[TASKS] create_tasks failed: {str(e)}")
        db.rollback()
        raise

def clear_user_tasks(db: Session, user_id: int) -> int:
    """Delete all tasks of a user."""
    try:
        deleted_count = db.query(ApplicationTask).filter(ApplicationTask.user_id == user_id).delete()
        db.commit()
        logger.info(f"[TASKS] Cleared {deleted_count} tasks for user {user_id}")
        return deleted_count
    except Exception as e:
        logger.error(f"[TASKS] clear_user_tasks failed: {str(e)}")
        db.rollback()
        raise

def get_user_task(db: Session, user_id: int, task_id: int) -> ApplicationTask:
    task = db.query(ApplicationTask).filter(
        and_(
            ApplicationTask.user_id == user_id,
            ApplicationTask.id == task_id
        )
    ).first()
    if not task:
        raise NotFoundError("Task not found")
    return task

def toggle_task_completion(db: Session, user_id: int, task_id: int) -> ApplicationTask:
    """Flip a task between completed and open."""
    task = get_user_task(db, user_id, task_id)
    try:
        task.is_completed = not task.is_completed
        task.completed_at = _now() if task.is_completed else None
        db.commit()
        db.refresh(task)
        return task
    except Exception as e:
        logger.error(f"[TASKS] toggle_task_completion failed: {str(e)}")
        db.rollback()
        raise

def delete_task(db: Session, user_id: int, task_id: int):
    task = get_user_task(db, user_id, task_id)
    try:
        db.delete(task)
        db.commit()
    except Exception as e:
        logger.error(f"[TASKS] delete_task failed: {str(e)}")
        db.rollback()
        raise

# Reset
def reset_user_data(db: Session, profile: UserProfile):
    """
    Delete all tasks and universities of the user and clear the profile
    back to an empty onboarding state.
    """
    try:
        db.query(ApplicationTask).filter(ApplicationTask.user_id == profile.id).delete()
        db.query(University).filter(University.user_id == profile.id).delete()

        for field in PROFILE_DATA_FIELDS:
            setattr(profile, field, None)
        profile.onboarding_completed = False
        profile.onboarding_step = 1
        profile.current_stage = StageEnum.ONBOARDING.value

        db.commit()
        db.refresh(profile)
        logger.info(f"[RESET] Cleared data for {profile.email}")
    except Exception as e:
        logger.error(f"[RESET] reset_user_data failed: {str(e)}")
        db.rollback()
        raise
