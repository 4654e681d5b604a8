"""
Concurrency tests against a file-backed SQLite database
Sessions run on separate threads and connections, released together by a barrier
"""
import threading

import pytest
from sqlalchemy.orm import sessionmaker

from content_vault.db import Base, ContentItem, Project, Selection, User, create_database_engine
from content_vault.db.models import Payment, ProjectEntitlement
from content_vault.exceptions import AlreadySelected, LimitReached
from content_vault.services.free_selection_policy import FreeSelectionPolicy
from content_vault.services.payment_lifecycle import PaymentLifecycleManager

from conftest import FakeProcessor

THREADS = 8


@pytest.fixture
def file_sessions(tmp_path):
    engine = create_database_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def seeded(file_sessions):
    with file_sessions() as db:
        user = User(email="racer@example.com", hashed_password="x")
        db.add(user)
        db.flush()
        project = Project(owner_user_id=user.id, name="Race", free_video_limit=3)
        db.add(project)
        db.flush()
        items = [
            ContentItem(
                project_id=project.id,
                owner_user_id=user.id,
                title=f"Clip {n}",
                type="video",
                filename=f"clip-{n}.mp4",
                file_url=f"https://cdn.example.com/clip-{n}.mp4",
            )
            for n in range(THREADS)
        ]
        db.add_all(items)
        db.commit()
        return user.id, project.id, [item.id for item in items]


def _run_concurrently(target, args_list):
    barrier = threading.Barrier(len(args_list))
    outcomes = [None] * len(args_list)

    def worker(index, args):
        barrier.wait()
        try:
            outcomes[index] = target(*args)
        except Exception as e:
            outcomes[index] = e

    threads = [threading.Thread(target=worker, args=(i, a)) for i, a in enumerate(args_list)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


class TestConcurrentFreeSelection:

    def test_limit_holds_under_concurrent_selects(self, file_sessions, seeded):
        user_id, project_id, item_ids = seeded

        def select(item_id):
            with file_sessions() as db:
                return FreeSelectionPolicy(db).select_free(user_id, project_id, item_id).content_item_id

        outcomes = _run_concurrently(select, [(item_id,) for item_id in item_ids])

        selected = [o for o in outcomes if isinstance(o, int)]
        rejected = [o for o in outcomes if isinstance(o, LimitReached)]
        assert len(selected) == 3
        assert len(rejected) == THREADS - 3
        with file_sessions() as db:
            assert db.query(Selection).count() == 3
            assert db.query(ProjectEntitlement).count() == 1

    def test_same_item_selected_once(self, file_sessions, seeded):
        user_id, project_id, item_ids = seeded

        def select(item_id):
            with file_sessions() as db:
                return FreeSelectionPolicy(db).select_free(user_id, project_id, item_id).content_item_id

        outcomes = _run_concurrently(select, [(item_ids[0],)] * THREADS)

        assert sum(1 for o in outcomes if isinstance(o, int)) == 1
        assert all(isinstance(o, AlreadySelected) for o in outcomes if not isinstance(o, int))


class TestConcurrentConfirmation:

    def test_one_grant_for_many_confirms(self, file_sessions, seeded):
        user_id, project_id, _ = seeded
        processor = FakeProcessor()
        with file_sessions() as db:
            user = db.get(User, user_id)
            intent_id = PaymentLifecycleManager(db, processor).create_package_payment_intent(
                user, project_id, "additional_3_videos"
            ).payment_intent_id

        def confirm():
            with file_sessions() as db:
                return PaymentLifecycleManager(db, processor).confirm_payment(intent_id).transitioned

        outcomes = _run_concurrently(confirm, [()] * THREADS)

        assert outcomes.count(True) == 1
        assert outcomes.count(False) == THREADS - 1
        with file_sessions() as db:
            payment = db.query(Payment).one()
            assert payment.status == "succeeded"
            entitlement = db.query(ProjectEntitlement).one()
            assert entitlement.has_additional_3_videos is True
