"""
Onboarding and profile form validation.

Mirrors the checks the onboarding wizard and the profile editor run before
saving. Each function returns a dict of field -> message; an empty dict
means the data is valid.
"""

from typing import Any, Dict, List

TOTAL_STEPS = 4

STEP_FIELDS: Dict[int, List[str]] = {
    1: ["education_level", "degree_major", "graduation_year", "gpa_percentage"],
    2: ["intended_degree", "field_of_study", "target_intake_year", "target_intake_term", "preferred_countries"],
    3: ["budget_min", "budget_max", "funding_plan"],
    4: ["ielts_toefl_status", "ielts_toefl_score", "gre_gmat_status", "gre_gmat_score", "sop_status"],
}

REQUIRED_MESSAGES = {
    "education_level": "Please select your education level",
    "degree_major": "Please enter your degree or major",
    "graduation_year": "Please select your graduation year",
    "gpa_percentage": "Please enter your GPA or percentage",
    "intended_degree": "Please select your intended degree",
    "field_of_study": "Please select your field of study",
    "target_intake_year": "Please select your target intake year",
    "preferred_countries": "Please select at least one country",
    "budget_min": "Please enter your minimum budget",
    "budget_max": "Please enter your maximum budget",
    "funding_plan": "Please select your funding plan",
    "ielts_toefl_status": "Please select your IELTS/TOEFL status",
    "gre_gmat_status": "Please select your GRE/GMAT status",
    "sop_status": "Please select your SOP status",
}

STEP_REQUIRED: Dict[int, List[str]] = {
    1: ["education_level", "degree_major", "graduation_year", "gpa_percentage"],
    2: ["intended_degree", "field_of_study", "target_intake_year", "preferred_countries"],
    3: ["budget_min", "budget_max", "funding_plan"],
    4: ["ielts_toefl_status", "gre_gmat_status", "sop_status"],
}

class ProfileValidationError(ValueError):
    """Raised when form data fails validation; carries field messages."""

    def __init__(self, fields: Dict[str, str]):
        super().__init__("Please fix the errors before saving")
        self.fields = fields

BUDGET_ORDER_MESSAGE = "Maximum budget must be greater than minimum"
GPA_RANGE_MESSAGE = "Please enter a valid GPA (0-4) or percentage (0-100)"

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return str(value).strip() == ""

def _check_budget_order(data: Dict, errors: Dict[str, str]):
    budget_min = data.get("budget_min")
    budget_max = data.get("budget_max")
    if not _is_blank(budget_min) and not _is_blank(budget_max) and budget_min > budget_max:
        errors["budget_max"] = BUDGET_ORDER_MESSAGE

def fields_for_steps(step: int) -> List[str]:
    """All fields written when saving onboarding up to `step`."""
    fields = []
    for s in range(1, min(step, TOTAL_STEPS) + 1):
        fields.extend(STEP_FIELDS[s])
    return fields

def validate_onboarding_step(step: int, data: Dict) -> Dict[str, str]:
    """Validate the fields required by a single onboarding step."""
    if step not in STEP_REQUIRED:
        return {"step": f"Step must be between 1 and {TOTAL_STEPS}"}

    errors = {}
    for field in STEP_REQUIRED[step]:
        if _is_blank(data.get(field)):
            errors[field] = REQUIRED_MESSAGES[field]

    if step == 3 and "budget_max" not in errors:
        _check_budget_order(data, errors)

    return errors

def validate_profile(data: Dict) -> Dict[str, str]:
    """Validate a full profile as the profile editor does before saving."""
    errors = {}
    for field, message in REQUIRED_MESSAGES.items():
        if _is_blank(data.get(field)):
            errors[field] = message

    gpa = data.get("gpa_percentage")
    if "gpa_percentage" not in errors and not (0 <= gpa <= 100):
        errors["gpa_percentage"] = GPA_RANGE_MESSAGE

    if "budget_max" not in errors:
        _check_budget_order(data, errors)

    return errors
