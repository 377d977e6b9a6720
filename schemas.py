"""
Pydantic schemas for API requests and responses.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional, Dict
from models import (
    StageEnum, EducationLevel, IntendedDegree, IntakeTerm, FundingPlan,
    ExamStatus, SopStatus, CategoryEnum, AcceptanceLikelihood, TaskCategory, TaskPriority,
)

# Profile Schemas
class ProfileFields(BaseModel):
    """Editable profile fields shared by onboarding and the profile editor."""
    education_level: Optional[EducationLevel] = None
    degree_major: Optional[str] = None
    graduation_year: Optional[int] = None
    gpa_percentage: Optional[float] = None
    intended_degree: Optional[IntendedDegree] = None
    field_of_study: Optional[str] = None
    target_intake_year: Optional[int] = None
    target_intake_term: Optional[IntakeTerm] = None
    preferred_countries: List[str] = []
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    funding_plan: Optional[FundingPlan] = None
    ielts_toefl_status: Optional[ExamStatus] = None
    ielts_toefl_score: Optional[float] = None
    gre_gmat_status: Optional[ExamStatus] = None
    gre_gmat_score: Optional[int] = None
    sop_status: Optional[SopStatus] = None

    @field_validator("*", mode="before")
    @classmethod
    def empty_string_to_none(cls, value):
        # Form inputs send "" for untouched fields
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

class OnboardingStepRequest(ProfileFields):
    email: EmailStr
    name: Optional[str] = None
    step: int = Field(ge=1, le=4)

class ProfileUpdateRequest(ProfileFields):
    email: EmailStr

class ProfileResponse(ProfileFields):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    preferred_countries: Optional[List[str]] = None
    onboarding_completed: bool = False
    onboarding_step: int = 1
    current_stage: StageEnum = StageEnum.ONBOARDING

class OnboardingResponse(BaseModel):
    onboarding_step: int
    onboarding_completed: bool
    current_stage: StageEnum
    user_id: int

class ValidationErrorResponse(BaseModel):
    error: str = "VALIDATION_ERROR"
    message: str
    fields: Dict[str, str] = {}

# Profile Strength Schemas
class ProfileStrengthResponse(BaseModel):
    percentage: int = 0
    completed_fields: int = 0
    total_fields: int = 0
    missing_fields: List[str] = []

class ReadinessResponse(BaseModel):
    academics: str = "weak"
    exams: str = "missing"
    budget_fit: str = "risky"
    overall_readiness_score: int = 0

class ProfileDetailResponse(BaseModel):
    profile: Optional[ProfileResponse] = None
    profile_strength: ProfileStrengthResponse = Field(default_factory=ProfileStrengthResponse)
    readiness: ReadinessResponse = Field(default_factory=ReadinessResponse)

# Dashboard Schema
class DashboardStats(BaseModel):
    shortlisted_count: int = 0
    locked_count: int = 0
    has_locked_universities: bool = False
    total_universities: int = 0

class DashboardResponse(BaseModel):
    current_stage: StageEnum
    stage_label: str
    stats: DashboardStats = Field(default_factory=DashboardStats)
    profile_strength: ProfileStrengthResponse = Field(default_factory=ProfileStrengthResponse)
    readiness: ReadinessResponse = Field(default_factory=ReadinessResponse)

# University Schemas
class UniversityCreate(BaseModel):
    name: str
    country: str
    city: Optional[str] = None
    program_name: Optional[str] = None
    degree_type: str
    field_of_study: Optional[str] = None
    tuition_per_year: Optional[int] = None
    living_cost_per_year: Optional[int] = None
    category: CategoryEnum = CategoryEnum.TARGET
    acceptance_likelihood: Optional[AcceptanceLikelihood] = None
    fit_explanation: Optional[str] = None
    risk_explanation: Optional[str] = None
    requirements_summary: Optional[str] = None

class ShortlistRequest(BaseModel):
    email: EmailStr
    university: UniversityCreate

class UniversityResponse(UniversityCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_shortlisted: bool = True
    is_locked: bool = False
    locked_at: Optional[datetime] = None

class ShortlistResponse(BaseModel):
    universities: List[UniversityResponse] = []
    locked_count: int = 0

class LockResponse(BaseModel):
    university: UniversityResponse
    locked_count: int
    stage_synced: Optional[StageEnum] = None

class RecommendationFilters(BaseModel):
    country: Optional[str] = None
    category: Optional[CategoryEnum] = None
    max_budget: Optional[int] = None
    degree_type: Optional[str] = None
    field: Optional[str] = None
    competition_level: Optional[AcceptanceLikelihood] = None

class RecommendationRequest(BaseModel):
    email: EmailStr
    filters: Optional[RecommendationFilters] = None

class RecommendationResponse(BaseModel):
    universities: List[Dict] = []

# Task Schemas
class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    university_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    category: TaskCategory
    priority: TaskPriority
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    due_date: Optional[str] = None
    is_ai_generated: bool = False
    sort_order: int = 0

class TaskListResponse(BaseModel):
    tasks: List[TaskResponse] = []
    tasks_by_category: Dict[str, List[TaskResponse]] = {}
    completed_count: int = 0
    total_count: int = 0
    progress_percentage: int = 0

class GenerateTasksRequest(BaseModel):
    email: EmailStr
    regenerate: bool = False

class GenerateTasksResponse(BaseModel):
    message: str
    regenerate: bool
    tasks: List[TaskResponse] = []

# AI Counsel Schema
class ChatMessage(BaseModel):
    role: str = Field(pattern="^(user|assistant)$")
    content: str

class CounselRequest(BaseModel):
    email: EmailStr
    messages: List[ChatMessage]

class CounselResponse(BaseModel):
    message: str

# Reset Schema
class ResetRequest(BaseModel):
    email: EmailStr

class ResetResponse(BaseModel):
    success: bool
    message: str

# Error Schema
class ErrorResponse(BaseModel):
    error: str
    message: str = ""
