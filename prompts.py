# AI Counsellor Prompts
# =====================
# Prompt text and profile context sent to the AI gateway.

from typing import Dict, List, Optional

from scoring import get_field

NOT_SPECIFIED = "Not specified"

COUNSELLOR_PROMPT = """
You are AI Counsellor, a decision-making advisor that guides students through their study-abroad journey.
You know the student's complete profile and give strategic, actionable guidance.

## Responsibilities
1. Assess academic strengths, gaps and readiness
2. Suggest Dream, Target and Safe universities (real universities only) with reasoning
3. Guide exam strategy (IELTS/TOEFL, GRE/GMAT)
4. Help with SOPs, LORs and timelines
5. Suggest cost-effective options and funding strategies

## Style
- Be direct and actionable, use markdown sections and bullet points
- Explain the reasoning behind every recommendation
- Always end with a clear next step or question
"""

RECOMMENDATIONS_PROMPT = """
You are an expert university admissions advisor. Generate exactly 7 real university recommendations:
2 dream, 3 target and 2 safe, matching the student's field, degree level, budget and country preferences.

Respond ONLY with a JSON array. Each item has:
name, country (code such as US, UK, CA), city, program_name, degree_type (bachelors|masters|mba|phd),
field_of_study, tuition_per_year, living_cost_per_year, category (dream|target|safe),
acceptance_likelihood (low|medium|high), fit_explanation, risk_explanation, requirements_summary.
"""

TASKS_PROMPT = """
You are an expert study abroad application advisor. Generate 15-20 actionable application tasks
for the student and the locked universities below.

Use the categories "document", "exam", "application" and "financial" and priorities "low", "medium", "high".
Respond ONLY with a JSON object: {"tasks": [{"title", "description", "category", "priority", "due_date"}]}
where due_date is YYYY-MM-DD or null.
"""

def _humanize(value) -> str:
    if value is None or value == "":
        return NOT_SPECIFIED
    return str(value).replace("_", " ")

def _with_score(status, score) -> str:
    text = _humanize(status)
    if score:
        text += f" (Score: {score})"
    return text

def build_profile_context(profile) -> str:
    """Render a profile as the summary block included in prompts."""
    if profile is None:
        return ""

    countries = get_field(profile, "preferred_countries") or []
    intake = f"{get_field(profile, 'target_intake_term') or ''} {get_field(profile, 'target_intake_year') or NOT_SPECIFIED}".strip()

    return f"""
## Student Profile
- Education Level: {_humanize(get_field(profile, 'education_level'))}
- Degree/Major: {_humanize(get_field(profile, 'degree_major'))}
- Graduation Year: {_humanize(get_field(profile, 'graduation_year'))}
- GPA/Percentage: {_humanize(get_field(profile, 'gpa_percentage'))}
- Intended Degree: {_humanize(get_field(profile, 'intended_degree'))}
- Field of Study: {_humanize(get_field(profile, 'field_of_study'))}
- Target Intake: {intake}
- Preferred Countries: {', '.join(countries) or NOT_SPECIFIED}
- Budget Range: ${get_field(profile, 'budget_min') or '?'} - ${get_field(profile, 'budget_max') or '?'} per year
- Funding Plan: {_humanize(get_field(profile, 'funding_plan'))}
- IELTS/TOEFL: {_with_score(get_field(profile, 'ielts_toefl_status'), get_field(profile, 'ielts_toefl_score'))}
- GRE/GMAT: {_with_score(get_field(profile, 'gre_gmat_status'), get_field(profile, 'gre_gmat_score'))}
- SOP Status: {_humanize(get_field(profile, 'sop_status'))}
"""

def build_stage_context(
    current_stage: Optional[str],
    shortlisted: Optional[List] = None,
    locked: Optional[List] = None
) -> str:
    """Stage and university block for the counsellor prompt."""
    if not current_stage and not shortlisted and not locked:
        return ""

    lines = ["", "## Stage & University Context"]
    if current_stage:
        lines.append(
            f"- Current stage: {current_stage}. If the student asks for something from a later stage "
            "(e.g. application tasks before locking universities), say they are not ready yet and what to do first."
        )
    if shortlisted:
        names = ", ".join(f"{get_field(u, 'name')} ({get_field(u, 'category') or 'shortlisted'})" for u in shortlisted)
        lines.append(f"- Shortlisted universities ({len(shortlisted)}): {names}")
    if locked:
        names = ", ".join(get_field(u, "name") for u in locked)
        lines.append(f"- Locked universities ({len(locked)}): {names}. Application guidance applies to these.")
    return "\n".join(lines) + "\n"

def get_counsellor_prompt(profile, current_stage, shortlisted=None, locked=None) -> str:
    return COUNSELLOR_PROMPT + build_profile_context(profile) + build_stage_context(current_stage, shortlisted, locked)

def build_recommendations_prompt(profile, filters: Optional[Dict] = None) -> str:
    prompt = "Generate university recommendations for this student:\n" + build_profile_context(profile)
    filters = filters or {}
    if filters.get("country"):
        prompt += f"\n## Filter Applied: Focus on {filters['country']}"
    if filters.get("category"):
        prompt += f"\n## Category Filter: Only show {filters['category']} universities"
    if filters.get("degree_type"):
        prompt += f"\n## Degree Filter: Only {filters['degree_type']} programs"
    if filters.get("field"):
        prompt += f"\n## Field Filter: Only programs in {filters['field']}"
    if filters.get("competition_level"):
        prompt += f"\n## Competition Filter: Only {filters['competition_level']} acceptance likelihood"
    if filters.get("max_budget"):
        prompt += f"\n## Budget Filter: Tuition plus living costs at most ${filters['max_budget']} per year"
    return prompt

def build_tasks_prompt(profile, locked_universities: List) -> str:
    university_lines = []
    for u in locked_universities:
        line = f"- {get_field(u, 'name')} ({get_field(u, 'country')}): " \
               f"{get_field(u, 'program_name') or get_field(u, 'field_of_study')} - {get_field(u, 'degree_type')}"
        if get_field(u, "requirements_summary"):
            line += f" | Requirements: {get_field(u, 'requirements_summary')}"
        university_lines.append(line)

    return build_profile_context(profile) + "\n## Locked Universities\n" + "\n".join(university_lines)
