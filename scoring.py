"""
Profile strength and readiness scoring.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

# Ordered checklist used for profile completion: (field, label)
PROFILE_FIELDS: List[Tuple[str, str]] = [
    ("education_level", "Education Level"),
    ("degree_major", "Degree/Major"),
    ("graduation_year", "Graduation Year"),
    ("gpa_percentage", "GPA/Percentage"),
    ("intended_degree", "Intended Degree"),
    ("field_of_study", "Field of Study"),
    ("target_intake_year", "Target Intake Year"),
    ("target_intake_term", "Target Intake Term"),
    ("preferred_countries", "Preferred Countries"),
    ("budget_min", "Budget (Min)"),
    ("budget_max", "Budget (Max)"),
    ("funding_plan", "Funding Plan"),
    ("ielts_toefl_status", "IELTS/TOEFL Status"),
    ("gre_gmat_status", "GRE/GMAT Status"),
    ("sop_status", "SOP Status"),
]

ACADEMICS_SCORES = {"strong": 90, "moderate": 60, "weak": 30}
EXAMS_SCORES = {"ready": 90, "in_progress": 50, "missing": 20}
BUDGET_SCORES = {"good": 85, "tight": 55, "risky": 35}

ACADEMICS_WEIGHT = 0.4
EXAMS_WEIGHT = 0.35
BUDGET_WEIGHT = 0.25

GOOD_BUDGET_USD = 35000
TIGHT_BUDGET_USD = 20000

def get_field(profile: Any, key: str) -> Any:
    """Read a field from a profile dict or ORM object."""
    if profile is None:
        return None
    if isinstance(profile, dict):
        return profile.get(key)
    return getattr(profile, key, None)

def get_number(profile: Any, key: str) -> Optional[float]:
    """Numeric field value; anything that is not an int or float counts as absent."""
    value = get_field(profile, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def is_field_completed(value: Any) -> bool:
    """A value counts as filled when present, non-empty and non-blank."""
    if value is None:
        return False
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) > 0
    return str(value).strip() != ""

def calculate_profile_strength(profile: Optional[Any]) -> Dict:
    """
    Calculate profile completion over the fixed field checklist.

    Args:
        profile: Profile dict or UserProfile row (None for a new user)

    Returns:
        Dict with percentage, completed_fields, total_fields, missing_fields
    """
    total_fields = len(PROFILE_FIELDS)

    if profile is None:
        return {
            "percentage": 0,
            "completed_fields": 0,
            "total_fields": total_fields,
            "missing_fields": [label for _, label in PROFILE_FIELDS]
        }

    completed_fields = 0
    missing_fields = []

    for key, label in PROFILE_FIELDS:
        if is_field_completed(get_field(profile, key)):
            completed_fields += 1
        else:
            missing_fields.append(label)

    return {
        "percentage": round_half_up(completed_fields / total_fields * 100),
        "completed_fields": completed_fields,
        "total_fields": total_fields,
        "missing_fields": missing_fields
    }

def score_academics(profile: Any) -> str:
    """
    Rate academics as strong / moderate / weak.

    The same raw number is checked against both the percentage scale
    (>= 85, >= 70) and the 4.0 GPA scale (3.5-4, 3-4).
    """
    gpa = get_number(profile, "gpa_percentage")

    if gpa is not None:
        if gpa >= 85 or (gpa <= 4 and gpa >= 3.5):
            return "strong"
        if gpa >= 70 or (gpa <= 4 and gpa >= 3):
            return "moderate"
        return "weak"

    if get_field(profile, "education_level") and get_field(profile, "degree_major"):
        return "moderate"
    return "weak"

def score_exams(profile: Any) -> str:
    """Rate exam readiness as ready / in_progress / missing."""
    ielts = get_field(profile, "ielts_toefl_status")
    gre = get_field(profile, "gre_gmat_status")

    ielts_taken = ielts == "taken"
    gre_taken = gre == "taken"

    if ielts_taken and gre_taken:
        return "ready"
    if ielts == "planned" or gre == "planned" or ielts_taken or gre_taken:
        return "in_progress"
    return "missing"

def score_budget(profile: Any) -> str:
    """Rate budget fit as good / tight / risky from the yearly budget range."""
    budget_min = get_number(profile, "budget_min") or 0
    budget_max = get_number(profile, "budget_max") or 0

    if not (budget_min > 0 or budget_max > 0):
        return "risky"

    if budget_max > budget_min:
        average = (budget_min + budget_max) / 2
    else:
        average = budget_min or budget_max

    if average >= GOOD_BUDGET_USD:
        return "good"
    if average >= TIGHT_BUDGET_USD:
        return "tight"
    return "risky"

def calculate_profile_strength_detailed(profile: Optional[Any]) -> Dict:
    """
    Calculate the readiness breakdown (academics, exams, budget fit)
    and the weighted overall readiness score (0-100).
    """
    if profile is None:
        return {
            "academics": "weak",
            "exams": "missing",
            "budget_fit": "risky",
            "overall_readiness_score": 0
        }

    academics = score_academics(profile)
    exams = score_exams(profile)
    budget_fit = score_budget(profile)

    overall = round_half_up(
        ACADEMICS_SCORES[academics] * ACADEMICS_WEIGHT
        + EXAMS_SCORES[exams] * EXAMS_WEIGHT
        + BUDGET_SCORES[budget_fit] * BUDGET_WEIGHT
    )

    return {
        "academics": academics,
        "exams": exams,
        "budget_fit": budget_fit,
        "overall_readiness_score": overall
    }

def calculate_task_progress(tasks: List[Any]) -> Dict:
    """Completed / total counts and percentage for application tasks."""
    total_count = len(tasks)
    completed_count = sum(1 for t in tasks if get_field(t, "is_completed"))
    percentage = round_half_up(completed_count / total_count * 100) if total_count > 0 else 0

    return {
        "completed_count": completed_count,
        "total_count": total_count,
        "progress_percentage": percentage
    }
