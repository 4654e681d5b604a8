"""
Tests for ContentRepository lookups and admin writes
"""
from decimal import Decimal

import pytest

from content_vault.db.models import ContentItem, Download, Payment, Project, ProjectEntitlement, Selection
from content_vault.exceptions import ContentNotFound, ContentVaultError, ProjectNotFound
from content_vault.services.content_repository import ContentRepository
from content_vault.services.entitlement_store import EntitlementStore
from content_vault.services.free_selection_policy import FreeSelectionPolicy


class TestLookups:

    def test_require_missing(self, db_session):
        repo = ContentRepository(db_session)
        with pytest.raises(ContentNotFound):
            repo.require_content_item(9999)
        with pytest.raises(ProjectNotFound):
            repo.require_project("missing")

    def test_list_project_content_by_type(self, db_session, project, videos, headshots):
        repo = ContentRepository(db_session)

        assert len(repo.list_project_content(project.id)) == len(videos) + len(headshots)
        assert [i.id for i in repo.list_project_content(project.id, "headshot")] == [h.id for h in headshots]

    def test_user_projects_include_entitled(self, db_session, test_user, other_user, project):
        repo = ContentRepository(db_session)
        assert repo.list_user_projects(other_user.id) == []

        EntitlementStore(db_session).get_or_create(other_user.id, project.id)
        db_session.commit()

        assert [p.id for p in repo.list_user_projects(other_user.id)] == [project.id]
        assert [p.id for p in repo.list_user_projects(test_user.id)] == [project.id]


class TestProjectWrites:

    def test_create_project_defaults(self, db_session, test_user):
        project = ContentRepository(db_session).create_project(test_user.id, "Headshot Day")

        assert len(project.id) == 36
        assert project.free_video_limit == 3
        assert project.free_headshot_limit is None
        assert project.additional_3_videos_price == Decimal("199.00")
        assert project.all_content_price == Decimal("499.00")

    def test_create_project_with_overrides(self, db_session, test_user):
        project = ContentRepository(db_session).create_project(
            test_user.id,
            "Premium",
            free_video_limit=5,
            free_headshot_limit=2,
            all_content_price=Decimal("799.00"),
        )

        assert project.free_video_limit == 5
        assert project.free_headshot_limit == 2
        assert project.all_content_price == Decimal("799.00")

    def test_negative_limit_rejected(self, db_session, test_user):
        with pytest.raises(ContentVaultError):
            ContentRepository(db_session).create_project(test_user.id, "Bad", free_video_limit=-1)

    def test_update_project(self, db_session, project):
        updated = ContentRepository(db_session).update_project(
            project.id, {"name": "Renamed", "free_headshot_limit": 1, "free_video_limit": None, "id": "x"}
        )

        assert updated.name == "Renamed"
        assert updated.free_headshot_limit == 1
        assert updated.free_video_limit == 3
        assert updated.id == project.id


class TestContentWrites:

    def test_create_content_item(self, db_session, test_user, project):
        item = ContentRepository(db_session).create_content_item(
            project.id,
            title="Intro",
            content_type="video",
            filename="intro.mp4",
            file_url="https://cdn.example.com/intro.mp4",
            duration=42,
        )

        assert item.owner_user_id == test_user.id
        assert item.price == Decimal("25.00")
        assert item.duration == 42

    def test_create_rejects_unknown_type(self, db_session, project):
        with pytest.raises(ValueError):
            ContentRepository(db_session).create_content_item(
                project.id, title="Song", content_type="audio", filename="a.mp3", file_url="https://x/a.mp3"
            )

    def test_metadata_update_keeps_type_and_price(self, db_session, videos):
        item = ContentRepository(db_session).update_content_metadata(
            videos[0].id, {"title": "New Title", "type": "headshot", "price": Decimal("1.00")}
        )

        assert item.title == "New Title"
        assert item.type == "video"
        assert item.price == Decimal("25.00")

    def test_metadata_update_ignores_null_title(self, db_session, videos):
        item = ContentRepository(db_session).update_content_metadata(
            videos[0].id, {"title": None, "description": None, "category": "reel"}
        )

        assert item.title == "Video 1"
        assert item.description is None
        assert item.category == "reel"


class TestReassign:

    def test_reassign_moves_project_and_items(self, db_session, test_user, other_user, project, videos):
        moved = ContentRepository(db_session).reassign_project(project.id, other_user.id)

        assert moved.owner_user_id == other_user.id
        db_session.expire_all()
        owners = {item.owner_user_id for item in db_session.query(ContentItem).filter_by(project_id=project.id)}
        assert owners == {other_user.id}
        assert project.id in {p.id for p in ContentRepository(db_session).list_user_projects(other_user.id)}
        assert project.id not in {p.id for p in ContentRepository(db_session).list_user_projects(test_user.id)}

    def test_reassign_keeps_entitlements(self, db_session, test_user, other_user, project):
        EntitlementStore(db_session).grant_package(test_user.id, project.id, "additional_3_videos")
        db_session.commit()

        ContentRepository(db_session).reassign_project(project.id, other_user.id)

        assert EntitlementStore(db_session).has_package(test_user.id, project.id, "additional_3_videos")

    def test_reassign_unknown_project(self, db_session, other_user):
        with pytest.raises(ProjectNotFound):
            ContentRepository(db_session).reassign_project("missing", other_user.id)


class TestDeletes:

    def test_delete_item_cascades(self, db_session, test_user, project, videos):
        FreeSelectionPolicy(db_session).select_free(test_user.id, project.id, videos[0].id)
        db_session.add(Download(user_id=test_user.id, content_item_id=videos[0].id))
        db_session.commit()
        item_id = videos[0].id

        counts = ContentRepository(db_session).delete_content_item(item_id)

        assert counts == {"downloads": 1, "selections": 1, "payments": 0}
        assert db_session.get(ContentItem, item_id) is None
        assert db_session.query(Selection).count() == 0

    def test_delete_project_cascades(self, db_session, test_user, project, videos):
        FreeSelectionPolicy(db_session).select_free(test_user.id, project.id, videos[0].id)
        EntitlementStore(db_session).grant_package(test_user.id, project.id, "additional_3_videos")
        db_session.add(Payment(
            user_id=test_user.id,
            project_id=project.id,
            package_type="additional_3_videos",
            external_payment_intent_id="pi_delete",
            amount_cents=19900,
        ))
        db_session.commit()
        project_id = project.id

        counts = ContentRepository(db_session).delete_project(project_id)

        assert counts["content_items"] == len(videos)
        assert counts["selections"] == 1
        assert counts["payments"] == 1
        assert counts["entitlements"] == 1
        db_session.expire_all()
        assert db_session.query(Project).filter(Project.id == project_id).count() == 0
        assert db_session.query(ProjectEntitlement).count() == 0
        assert db_session.query(ContentItem).count() == 0
