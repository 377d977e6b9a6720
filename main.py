from fastapi import FastAPI, Depends, Request, BackgroundTasks
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
import logging

from config import settings
import crud
import schemas
import service
from database import get_db, get_session_factory, verify_tables_exist
from gemini_client import AIGatewayError
from scoring import calculate_profile_strength, calculate_profile_strength_detailed
from validation import ProfileValidationError, validate_onboarding_step, validate_profile, TOTAL_STEPS

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(title="Study Abroad Counsellor Backend")

# Ensure database tables exist on startup
@app.on_event("startup")
def startup_event():
    settings.validate()
    if settings.DATABASE_URL:
        verify_tables_exist()

# Global Custom Error Handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert 422 to 400 for frontend compatibility."""
    return JSONResponse(
        status_code=400,
        content={"error": "VALIDATION_ERROR", "message": f"Invalid data format: {str(exc)}"},
    )

@app.exception_handler(ProfileValidationError)
async def profile_validation_handler(request: Request, exc: ProfileValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "VALIDATION_ERROR", "message": str(exc), "fields": exc.fields},
    )

@app.exception_handler(AIGatewayError)
async def ai_gateway_exception_handler(request: Request, exc: AIGatewayError):
    """Rate limits (429) and exhausted credits (402) keep their own status."""
    logger.error(f"[AI] {type(exc).__name__}: {str(exc)}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

@app.exception_handler(crud.NotFoundError)
async def not_found_handler(request: Request, exc: crud.NotFoundError):
    return JSONResponse(status_code=404, content={"error": "NOT_FOUND", "message": str(exc)})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions."""
    logger.exception(f"Global Error: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_SERVER_ERROR", "message": "An unexpected error occurred. Please try again."},
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _bad_request(exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "BAD_REQUEST", "message": str(exc)})

# ============================================
# ENDPOINTS
# ============================================

@app.get("/")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "study-abroad-counsellor"}

# Onboarding
@app.post("/onboarding/step", response_model=schemas.OnboardingResponse)
async def onboarding_step(request: schemas.OnboardingStepRequest, db: Session = Depends(get_db)):
    """
    Validate the current wizard step and save progress.
    Like "Next", the stored step advances to step + 1 (capped at the last step).
    """
    data = request.model_dump(mode="json")
    errors = validate_onboarding_step(request.step, data)
    if errors:
        raise ProfileValidationError(errors)

    next_step = min(request.step + 1, TOTAL_STEPS)
    profile = crud.save_onboarding_progress(db, request.email, next_step, data, completed=False, name=request.name)

    return schemas.OnboardingResponse(
        onboarding_step=profile.onboarding_step,
        onboarding_completed=profile.onboarding_completed,
        current_stage=profile.current_stage,
        user_id=profile.id
    )

@app.post("/onboarding/complete", response_model=schemas.OnboardingResponse)
async def onboarding_complete(request: schemas.OnboardingStepRequest, db: Session = Depends(get_db)):
    """Validate the final step and mark onboarding as completed."""
    data = request.model_dump(mode="json")
    errors = validate_onboarding_step(TOTAL_STEPS, data)
    if errors:
        raise ProfileValidationError(errors)

    profile = crud.save_onboarding_progress(db, request.email, TOTAL_STEPS, data, completed=True, name=request.name)
    logger.info(f"[ONBOARDING] Completed for {request.email}")

    return schemas.OnboardingResponse(
        onboarding_step=profile.onboarding_step,
        onboarding_completed=profile.onboarding_completed,
        current_stage=profile.current_stage,
        user_id=profile.id
    )

# Profile
@app.get("/profile", response_model=schemas.ProfileDetailResponse)
async def get_profile(email: str, db: Session = Depends(get_db)):
    """Profile with completion strength and readiness. Unknown users get the empty defaults."""
    profile = crud.get_user_by_email(db, email)
    return schemas.ProfileDetailResponse(
        profile=schemas.ProfileResponse.model_validate(profile) if profile else None,
        profile_strength=calculate_profile_strength(profile),
        readiness=calculate_profile_strength_detailed(profile)
    )

@app.put("/profile", response_model=schemas.ProfileDetailResponse)
async def update_profile(request: schemas.ProfileUpdateRequest, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, request.email)
    data = request.model_dump(mode="json")
    errors = validate_profile(data)
    if errors:
        raise ProfileValidationError(errors)

    profile = crud.update_profile_fields(db, profile, data)
    return schemas.ProfileDetailResponse(
        profile=schemas.ProfileResponse.model_validate(profile),
        profile_strength=calculate_profile_strength(profile),
        readiness=calculate_profile_strength_detailed(profile)
    )

# Dashboard
@app.get("/dashboard", response_model=schemas.DashboardResponse)
async def dashboard(
    email: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory)
):
    """
    Dashboard stats with the freshly computed stage.
    A stale stage mirror is synced in the background after the response.
    """
    profile = crud.require_profile(db, email)
    result = service.build_dashboard(db, profile)

    if result.pop("needs_sync"):
        background_tasks.add_task(service.sync_stage_to_database, session_factory, email, result["current_stage"])

    return schemas.DashboardResponse(**result)

# Universities
@app.post("/universities/recommendations", response_model=schemas.RecommendationResponse)
def university_recommendations(request: schemas.RecommendationRequest, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, request.email)
    filters = request.filters.model_dump(mode="json") if request.filters else None
    return schemas.RecommendationResponse(universities=service.recommend_universities(profile, filters))

@app.get("/universities/shortlist", response_model=schemas.ShortlistResponse)
async def get_shortlist(email: str, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, email)
    universities = crud.get_shortlisted_universities(db, profile.id)
    return schemas.ShortlistResponse(
        universities=universities,
        locked_count=sum(1 for u in universities if u.is_locked)
    )

@app.post("/universities/shortlist", response_model=schemas.UniversityResponse)
async def add_to_shortlist(request: schemas.ShortlistRequest, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, request.email)
    university = crud.add_to_shortlist(db, profile.id, request.university.model_dump(mode="json"))
    logger.info(f"[SHORTLIST] Added {university.name} for {request.email}")
    return university

@app.delete("/universities/{university_id}")
async def remove_university(university_id: int, email: str, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, email)
    crud.remove_university(db, profile.id, university_id)
    return {"success": True, "message": "University removed from your shortlist."}

@app.post("/universities/{university_id}/lock", response_model=schemas.LockResponse)
async def lock_university(
    university_id: int,
    email: str,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory)
):
    profile = crud.require_profile(db, email)
    try:
        result = await service.change_university_lock(db, session_factory, profile, university_id, locked=True)
    except ValueError as e:
        return _bad_request(e)
    return schemas.LockResponse(**result)

@app.post("/universities/{university_id}/unlock", response_model=schemas.LockResponse)
async def unlock_university(
    university_id: int,
    email: str,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory)
):
    profile = crud.require_profile(db, email)
    result = await service.change_university_lock(db, session_factory, profile, university_id, locked=False)
    return schemas.LockResponse(**result)

# Application tasks
@app.get("/tasks", response_model=schemas.TaskListResponse)
async def list_tasks(email: str, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, email)
    return schemas.TaskListResponse(**service.build_task_overview(db, profile))

@app.post("/tasks/generate", response_model=schemas.GenerateTasksResponse)
def generate_tasks(request: schemas.GenerateTasksRequest, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, request.email)
    try:
        result = service.generate_application_tasks(db, profile, request.regenerate)
    except ValueError as e:
        return _bad_request(e)
    return schemas.GenerateTasksResponse(**result)

@app.post("/tasks/{task_id}/toggle", response_model=schemas.TaskResponse)
async def toggle_task(task_id: int, email: str, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, email)
    return crud.toggle_task_completion(db, profile.id, task_id)

@app.delete("/tasks/{task_id}")
async def delete_task(task_id: int, email: str, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, email)
    crud.delete_task(db, profile.id, task_id)
    return {"success": True, "message": "The task has been removed."}

# AI counsellor
@app.post("/counsel", response_model=schemas.CounselResponse)
def counsel(request: schemas.CounselRequest, db: Session = Depends(get_db)):
    """Counsellor chat. Works without a profile, with generic context."""
    profile = crud.get_user_by_email(db, request.email)
    messages = [m.model_dump() for m in request.messages]
    return schemas.CounselResponse(message=service.counsel(db, profile, messages))

# Reset
@app.post("/reset", response_model=schemas.ResetResponse)
async def reset(request: schemas.ResetRequest, db: Session = Depends(get_db)):
    profile = crud.require_profile(db, request.email)
    crud.reset_user_data(db, profile)
    return schemas.ResetResponse(
        success=True,
        message="Your profile, universities, and tasks have been cleared. You can create a new profile now."
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
