"""Tests for stage sync, lock orchestration and task generation."""

from unittest.mock import AsyncMock, patch

import pytest

import crud
import service
from gemini_client import AIGatewayError
from models import StageEnum, UserProfile

from conftest import TEST_EMAIL, make_university


class TestSyncStageToDatabase:
    """Test the stage mirror write."""

    @pytest.mark.asyncio
    async def test_writes_stage(self, db, session_factory, onboarded_profile):
        result = await service.sync_stage_to_database(session_factory, TEST_EMAIL, StageEnum.APPLICATIONS)

        assert result is True
        db.expire_all()
        assert db.query(UserProfile).filter_by(email=TEST_EMAIL).one().current_stage == "applications"

    @pytest.mark.asyncio
    async def test_unknown_user_returns_false(self, session_factory):
        assert await service.sync_stage_to_database(session_factory, "ghost@example.com", StageEnum.DISCOVER) is False

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        def broken_factory():
            raise RuntimeError("connection refused")

        result = await service.sync_stage_to_database(broken_factory, TEST_EMAIL, StageEnum.DISCOVER)

        assert result is False
        assert "Failed to sync stage" in caplog.text


class TestResolveStage:
    def test_no_profile(self, db):
        assert service.resolve_stage(db, None) == StageEnum.ONBOARDING

    def test_from_facts(self, db, onboarded_profile):
        assert service.resolve_stage(db, onboarded_profile) == StageEnum.DISCOVER

        make_university(db, onboarded_profile, is_locked=True)
        assert service.resolve_stage(db, onboarded_profile) == StageEnum.LOCK_CHOICES

        crud.create_tasks(db, onboarded_profile.id, [{"title": "Request transcripts"}])
        assert service.resolve_stage(db, onboarded_profile) == StageEnum.APPLICATIONS


class TestBuildDashboard:
    def test_stale_mirror_needs_sync(self, db, onboarded_profile):
        make_university(db, onboarded_profile, is_locked=True)
        make_university(db, onboarded_profile, "McGill University")

        result = service.build_dashboard(db, onboarded_profile)

        assert result["current_stage"] == StageEnum.LOCK_CHOICES
        assert result["stage_label"] == "Lock Choices"
        assert result["stats"]["shortlisted_count"] == 2
        assert result["stats"]["locked_count"] == 1
        assert result["needs_sync"] is True

    def test_fresh_mirror(self, db, onboarded_profile):
        result = service.build_dashboard(db, onboarded_profile)
        assert result["current_stage"] == StageEnum.DISCOVER
        assert result["needs_sync"] is False
        assert result["profile_strength"]["percentage"] == 100


class TestChangeUniversityLock:
    """Test explicit syncs on the first lock and the last unlock."""

    @pytest.mark.asyncio
    async def test_first_lock_syncs_once(self, db, session_factory, onboarded_profile):
        university = make_university(db, onboarded_profile)

        with patch.object(service, "sync_stage_to_database", new_callable=AsyncMock) as mock_sync:
            result = await service.change_university_lock(db, session_factory, onboarded_profile, university.id, True)

        mock_sync.assert_awaited_once_with(session_factory, TEST_EMAIL, StageEnum.LOCK_CHOICES)
        assert result["locked_count"] == 1
        assert result["stage_synced"] == StageEnum.LOCK_CHOICES

    @pytest.mark.asyncio
    async def test_second_lock_does_not_sync(self, db, session_factory, onboarded_profile):
        make_university(db, onboarded_profile, "Already Locked", is_locked=True)
        university = make_university(db, onboarded_profile)

        with patch.object(service, "sync_stage_to_database", new_callable=AsyncMock) as mock_sync:
            result = await service.change_university_lock(db, session_factory, onboarded_profile, university.id, True)

        mock_sync.assert_not_awaited()
        assert result["locked_count"] == 2
        assert result["stage_synced"] is None

    @pytest.mark.asyncio
    async def test_last_unlock_syncs_discover(self, db, session_factory, onboarded_profile):
        university = make_university(db, onboarded_profile, is_locked=True)

        with patch.object(service, "sync_stage_to_database", new_callable=AsyncMock) as mock_sync:
            result = await service.change_university_lock(db, session_factory, onboarded_profile, university.id, False)

        mock_sync.assert_awaited_once_with(session_factory, TEST_EMAIL, StageEnum.DISCOVER)
        assert result["locked_count"] == 0

    @pytest.mark.asyncio
    async def test_lock_persists_stage(self, db, session_factory, onboarded_profile):
        university = make_university(db, onboarded_profile)

        await service.change_university_lock(db, session_factory, onboarded_profile, university.id, True)

        db.expire_all()
        assert db.query(UserProfile).filter_by(email=TEST_EMAIL).one().current_stage == "lock_choices"

    @pytest.mark.asyncio
    async def test_sync_failure_does_not_fail_lock(self, db, onboarded_profile):
        university = make_university(db, onboarded_profile)

        def broken_factory():
            raise RuntimeError("database unavailable")

        result = await service.change_university_lock(db, broken_factory, onboarded_profile, university.id, True)

        assert result["university"].is_locked is True
        assert result["stage_synced"] == StageEnum.LOCK_CHOICES


class TestGenerateApplicationTasks:
    """Test task generation from locked universities."""

    AI_TASKS = {
        "tasks": [
            {"title": "Book IELTS", "category": "exam", "priority": "high", "due_date": "2026-01-15"},
            {"title": "Draft SOP", "category": "document", "priority": "medium", "due_date": None},
            {"description": "missing title"},
        ]
    }

    def test_requires_locked_university(self, db, onboarded_profile):
        with pytest.raises(ValueError, match="No locked universities"):
            service.generate_application_tasks(db, onboarded_profile)

    def test_generates_tasks(self, db, onboarded_profile):
        make_university(db, onboarded_profile, is_locked=True)

        with patch.object(service, "generate_json", return_value=self.AI_TASKS) as mock_generate:
            result = service.generate_application_tasks(db, onboarded_profile)

        mock_generate.assert_called_once()
        assert "University of Toronto" in mock_generate.call_args[0][0]
        assert [t.title for t in result["tasks"]] == ["Book IELTS", "Draft SOP"]
        assert result["message"] == "Generated 2 application tasks"

    def test_existing_tasks_without_regenerate(self, db, onboarded_profile):
        make_university(db, onboarded_profile, is_locked=True)
        crud.create_tasks(db, onboarded_profile.id, [{"title": "Existing"}])

        with patch.object(service, "generate_json") as mock_generate:
            result = service.generate_application_tasks(db, onboarded_profile, regenerate=False)

        mock_generate.assert_not_called()
        assert result["message"] == "Tasks already generated"
        assert len(crud.get_tasks(db, onboarded_profile.id)) == 1

    def test_regenerate_replaces_tasks(self, db, onboarded_profile):
        make_university(db, onboarded_profile, is_locked=True)
        crud.create_tasks(db, onboarded_profile.id, [{"title": "Existing"}])

        with patch.object(service, "generate_json", return_value=self.AI_TASKS):
            service.generate_application_tasks(db, onboarded_profile, regenerate=True)

        assert [t.title for t in crud.get_tasks(db, onboarded_profile.id)] == ["Book IELTS", "Draft SOP"]

    def test_malformed_ai_answer(self, db, onboarded_profile):
        make_university(db, onboarded_profile, is_locked=True)

        with patch.object(service, "generate_json", return_value=["not", "an", "object"]):
            with pytest.raises(AIGatewayError, match="Invalid AI response format"):
                service.generate_application_tasks(db, onboarded_profile)


class TestTaskOverview:
    def test_grouping_and_progress(self, db, onboarded_profile):
        tasks = crud.create_tasks(db, onboarded_profile.id, [
            {"title": "IELTS", "category": "exam"},
            {"title": "GRE", "category": "exam"},
            {"title": "Bank statement", "category": "financial"},
            {"title": "Transcripts", "category": "document"},
        ])
        crud.toggle_task_completion(db, onboarded_profile.id, tasks[0].id)

        overview = service.build_task_overview(db, onboarded_profile)

        assert [t.title for t in overview["tasks_by_category"]["exam"]] == ["IELTS", "GRE"]
        assert overview["completed_count"] == 1
        assert overview["total_count"] == 4
        assert overview["progress_percentage"] == 25


class TestCounsel:
    def test_counsel_includes_stage_context(self, db, onboarded_profile):
        make_university(db, onboarded_profile, is_locked=True)
        messages = [
            {"role": "user", "content": "Which exams do I need?"},
            {"role": "assistant", "content": "IELTS and GRE."},
            {"role": "user", "content": "What next?"},
        ]

        with patch.object(service, "generate_text", return_value="Start your SOP.") as mock_generate:
            reply = service.counsel(db, onboarded_profile, messages)

        assert reply == "Start your SOP."
        history, system_prompt = mock_generate.call_args[0]
        assert [m["role"] for m in history] == ["user", "model", "user"]
        assert "Current stage: lock_choices" in system_prompt
        assert "Locked universities (1): University of Toronto" in system_prompt

    def test_counsel_without_profile(self, db):
        with patch.object(service, "generate_text", return_value="Welcome!") as mock_generate:
            reply = service.counsel(db, None, [{"role": "user", "content": "Hi"}])

        assert reply == "Welcome!"
        system_prompt = mock_generate.call_args[0][1]
        assert "Student Profile" not in system_prompt
        assert "Current stage: onboarding" in system_prompt


class TestRecommendUniversities:
    """Test that every recommendation filter is applied to the gateway answer."""

    RECOMMENDED = [
        {
            "name": "University of Toronto", "country": "CA", "category": "target", "degree_type": "masters",
            "field_of_study": "Computer Science", "acceptance_likelihood": "medium",
            "tuition_per_year": 30000, "living_cost_per_year": 15000,
        },
        {
            "name": "ETH Zurich", "country": "CH", "category": "dream", "degree_type": "phd",
            "field_of_study": "Mathematics", "acceptance_likelihood": "low",
            "tuition_per_year": 1500, "living_cost_per_year": 25000,
        },
        {
            "name": "Memorial University", "country": "CA", "category": "safe", "degree_type": "masters",
            "field_of_study": "Computer Science", "acceptance_likelihood": "high",
            "tuition_per_year": 12000, "living_cost_per_year": None,
        },
    ]

    def recommend(self, onboarded_profile, filters):
        with patch.object(service, "generate_json", return_value=self.RECOMMENDED):
            return [u["name"] for u in service.recommend_universities(onboarded_profile, filters)]

    def test_no_filters_returns_everything(self, onboarded_profile):
        assert len(self.recommend(onboarded_profile, None)) == 3

    def test_degree_type_and_field(self, onboarded_profile):
        names = self.recommend(onboarded_profile, {"degree_type": "phd", "field": "Mathematics"})
        assert names == ["ETH Zurich"]

    def test_country_and_category(self, onboarded_profile):
        assert self.recommend(onboarded_profile, {"country": "CA", "category": "safe"}) == ["Memorial University"]

    def test_competition_level(self, onboarded_profile):
        assert self.recommend(onboarded_profile, {"competition_level": "medium"}) == ["University of Toronto"]

    def test_max_budget_counts_tuition_and_living_costs(self, onboarded_profile):
        # 45000 and 26500 are over budget; missing living costs count as 0
        assert self.recommend(onboarded_profile, {"max_budget": 20000}) == ["Memorial University"]

    def test_unset_filters_are_ignored(self, onboarded_profile):
        filters = {"country": None, "category": None, "degree_type": None, "field": None,
                   "competition_level": None, "max_budget": None}
        assert len(self.recommend(onboarded_profile, filters)) == 3
