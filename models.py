from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey, DateTime, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import enum

Base = declarative_base()

# Enums
class StageEnum(str, enum.Enum):
    ONBOARDING = "onboarding"
    DISCOVER = "discover"
    LOCK_CHOICES = "lock_choices"
    APPLICATIONS = "applications"

class EducationLevel(str, enum.Enum):
    HIGH_SCHOOL = "high_school"
    BACHELORS = "bachelors"
    MASTERS = "masters"
    OTHER = "other"

class IntendedDegree(str, enum.Enum):
    BACHELORS = "bachelors"
    MASTERS = "masters"
    MBA = "mba"
    PHD = "phd"

class IntakeTerm(str, enum.Enum):
    FALL = "fall"
    SPRING = "spring"
    SUMMER = "summer"

class FundingPlan(str, enum.Enum):
    SELF_FUNDED = "self_funded"
    SCHOLARSHIP_DEPENDENT = "scholarship_dependent"
    LOAN_DEPENDENT = "loan_dependent"

class ExamStatus(str, enum.Enum):
    NOT_PLANNED = "not_planned"
    PLANNED = "planned"
    TAKEN = "taken"

class SopStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    DRAFT = "draft"
    READY = "ready"

class CategoryEnum(str, enum.Enum):
    DREAM = "dream"
    TARGET = "target"
    SAFE = "safe"

class AcceptanceLikelihood(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class TaskCategory(str, enum.Enum):
    DOCUMENT = "document"
    EXAM = "exam"
    APPLICATION = "application"
    FINANCIAL = "financial"
    OTHER = "other"

class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

# Models
class UserProfile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255))

    # Academic background
    education_level = Column(String(50))
    degree_major = Column(String(255))
    graduation_year = Column(Integer)
    gpa_percentage = Column(Float)

    # Study goals
    intended_degree = Column(String(50))
    field_of_study = Column(String(255))
    target_intake_year = Column(Integer)
    target_intake_term = Column(String(50))
    preferred_countries = Column(JSON)

    # Budget
    budget_min = Column(Integer)
    budget_max = Column(Integer)
    funding_plan = Column(String(50))

    # Exams & readiness
    ielts_toefl_status = Column(String(50))
    ielts_toefl_score = Column(Float)
    gre_gmat_status = Column(String(50))
    gre_gmat_score = Column(Integer)
    sop_status = Column(String(50))

    # Meta
    onboarding_completed = Column(Boolean, nullable=False, default=False)
    onboarding_step = Column(Integer, nullable=False, default=1)
    current_stage = Column(String(50), nullable=False, default=StageEnum.ONBOARDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class University(Base):
    __tablename__ = "universities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    country = Column(String(100), nullable=False)
    city = Column(String(100))
    program_name = Column(String(255))
    degree_type = Column(String(50), nullable=False)
    field_of_study = Column(String(255))
    tuition_per_year = Column(Integer)
    living_cost_per_year = Column(Integer)
    category = Column(String(20), nullable=False, default=CategoryEnum.TARGET.value)
    acceptance_likelihood = Column(String(20))
    fit_explanation = Column(Text)
    risk_explanation = Column(Text)
    requirements_summary = Column(Text)
    is_shortlisted = Column(Boolean, nullable=False, default=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class ApplicationTask(Base):
    __tablename__ = "application_tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    university_id = Column(Integer, ForeignKey("universities.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(20), nullable=False, default=TaskCategory.OTHER.value)
    priority = Column(String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True))
    due_date = Column(String(10))
    is_ai_generated = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
