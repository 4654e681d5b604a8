"""
Tests for FreeSelectionPolicy quota enforcement
"""
import pytest

from content_vault.db.models import Project, Selection
from content_vault.exceptions import AlreadySelected, ContentNotFound, LimitReached, ProjectMismatch
from content_vault.services.free_selection_policy import FreeSelectionPolicy
from content_vault.services.metrics import get_metrics_collector

from conftest import make_item


class TestSelectFree:

    def test_records_selection(self, db_session, test_user, project, videos):
        selection = FreeSelectionPolicy(db_session).select_free(test_user.id, project.id, videos[0].id)

        assert selection.id is not None
        assert selection.content_item_id == videos[0].id
        assert selection.content_type == "video"
        assert selection.selection_type == "free"
        assert db_session.query(Selection).count() == 1

    def test_limit_reached_after_three_videos(self, db_session, test_user, project, videos):
        policy = FreeSelectionPolicy(db_session)
        for video in videos[:3]:
            policy.select_free(test_user.id, project.id, video.id)

        with pytest.raises(LimitReached) as exc_info:
            policy.select_free(test_user.id, project.id, videos[3].id)

        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"content_type": "video", "used": 3, "limit": 3}
        assert db_session.query(Selection).count() == 3

    def test_duplicate_selection_rejected(self, db_session, test_user, project, videos):
        policy = FreeSelectionPolicy(db_session)
        policy.select_free(test_user.id, project.id, videos[0].id)

        with pytest.raises(AlreadySelected):
            policy.select_free(test_user.id, project.id, videos[0].id)

        assert db_session.query(Selection).count() == 1

    def test_duplicate_does_not_consume_quota(self, db_session, test_user, project, videos):
        policy = FreeSelectionPolicy(db_session)
        policy.select_free(test_user.id, project.id, videos[0].id)
        with pytest.raises(AlreadySelected):
            policy.select_free(test_user.id, project.id, videos[0].id)

        policy.select_free(test_user.id, project.id, videos[1].id)
        policy.select_free(test_user.id, project.id, videos[2].id)

    def test_headshots_not_free_by_default(self, db_session, test_user, project, headshots):
        with pytest.raises(LimitReached) as exc_info:
            FreeSelectionPolicy(db_session).select_free(test_user.id, project.id, headshots[0].id)

        assert exc_info.value.details["content_type"] == "headshot"
        assert exc_info.value.details["limit"] == 0

    def test_headshot_quota_is_separate(self, db_session, test_user, project, videos, headshots):
        project.free_headshot_limit = 1
        db_session.commit()
        policy = FreeSelectionPolicy(db_session)
        for video in videos[:3]:
            policy.select_free(test_user.id, project.id, video.id)

        policy.select_free(test_user.id, project.id, headshots[0].id)
        with pytest.raises(LimitReached):
            policy.select_free(test_user.id, project.id, headshots[1].id)

    def test_quota_is_per_user(self, db_session, test_user, other_user, project, videos):
        policy = FreeSelectionPolicy(db_session)
        for video in videos[:3]:
            policy.select_free(test_user.id, project.id, video.id)

        selection = policy.select_free(other_user.id, project.id, videos[0].id)
        assert selection.user_id == other_user.id

    def test_quota_is_per_project(self, db_session, test_user, project, videos):
        second = Project(owner_user_id=test_user.id, name="Autumn Shoot", free_video_limit=3)
        db_session.add(second)
        db_session.commit()
        policy = FreeSelectionPolicy(db_session)
        for video in videos[:3]:
            policy.select_free(test_user.id, project.id, video.id)

        other_video = make_item(db_session, second, "video", "Autumn 1")
        policy.select_free(test_user.id, second.id, other_video.id)

    def test_zero_limit_project(self, db_session, test_user, project, videos):
        project.free_video_limit = 0
        db_session.commit()

        with pytest.raises(LimitReached):
            FreeSelectionPolicy(db_session).select_free(test_user.id, project.id, videos[0].id)

    def test_unknown_item(self, db_session, test_user, project):
        with pytest.raises(ContentNotFound):
            FreeSelectionPolicy(db_session).select_free(test_user.id, project.id, 9999)

    def test_item_from_another_project(self, db_session, test_user, project, videos):
        with pytest.raises(ProjectMismatch):
            FreeSelectionPolicy(db_session).select_free(test_user.id, "not-this-project", videos[0].id)

    def test_metrics_count_outcomes(self, db_session, test_user, project, videos):
        policy = FreeSelectionPolicy(db_session)
        policy.select_free(test_user.id, project.id, videos[0].id)
        with pytest.raises(AlreadySelected):
            policy.select_free(test_user.id, project.id, videos[0].id)

        collector = get_metrics_collector()
        assert collector.get_counter("free_selections_total", {"result": "selected"}) == 1
        assert collector.get_counter("free_selections_total", {"result": "already_selected"}) == 1


class TestCanSelectFree:

    def test_reflects_remaining_quota(self, db_session, test_user, project, videos):
        policy = FreeSelectionPolicy(db_session)
        assert policy.can_select_free(test_user.id, project.id, "video")
        assert not policy.can_select_free(test_user.id, project.id, "headshot")

        for video in videos[:3]:
            policy.select_free(test_user.id, project.id, video.id)
        assert not policy.can_select_free(test_user.id, project.id, "video")
