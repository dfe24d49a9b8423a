"""
Task API — Task Service Unit Tests
===================================

What:  Tests for TaskService CRUD and its owner scoping.
How:   Two real users on the SQLite test database; Identity values are built
       from their rows exactly as the authentication dependency would.

What we test:
    ✅ Create stores the caller as owner with equal timestamps
    ✅ Empty / whitespace title or description → ValidationError, no row
    ✅ List returns only the caller's tasks, in insertion order
    ✅ Missing id → NotFoundError; someone else's id → ForbiddenError
    ✅ Partial update touches only supplied fields, updated_at moves forward
    ✅ Rejected updates and deletes leave the task unchanged
    ✅ Store failures surface as DatabaseError
"""

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from taskapi.database import async_session_factory, utcnow
from taskapi.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from taskapi.models.task import Task
from taskapi.models.user import User
from taskapi.schemas.auth import Identity
from taskapi.services.task_service import TaskService


@pytest_asyncio.fixture
async def owners(db_session):
    """(alice, bob) identities backed by real user rows."""
    identities = []
    for name in ("alice", "bob"):
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash="x",
            created_at=utcnow(),
        )
        db_session.add(user)
        await db_session.flush()
        identities.append(Identity.model_validate(user))
    return tuple(identities)


class TestCreateAndList:

    def setup_method(self):
        self.service = TaskService()

    @pytest.mark.asyncio
    async def test_create_task(self, db_session, owners):
        alice, _ = owners

        task = await self.service.create(db_session, alice, "Buy milk", "Two litres")

        assert task.id >= 1
        assert task.title == "Buy milk"
        assert task.description == "Two litres"
        assert task.completed is False
        assert task.user_id == alice.id
        assert task.created_at == task.updated_at

    @pytest.mark.asyncio
    async def test_create_completed_task(self, db_session, owners):
        alice, _ = owners
        task = await self.service.create(db_session, alice, "Done", "Already", completed=True)
        assert task.completed is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "title, description, field",
        [("", "d", "title"), ("   ", "d", "title"), ("t", "", "description"), ("t", "\n", "description")],
    )
    async def test_empty_text_rejected(self, db_session, owners, title, description, field):
        alice, _ = owners

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create(db_session, alice, title, description)

        assert exc_info.value.field == field
        assert await self.service.list_for_user(db_session, alice) == []

    @pytest.mark.asyncio
    async def test_title_length_limit(self, db_session, owners):
        alice, _ = owners

        task = await self.service.create(db_session, alice, "t" * 255, "d")
        assert len(task.title) == 255

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create(db_session, alice, "t" * 256, "d")
        assert exc_info.value.field == "title"

    @pytest.mark.asyncio
    async def test_create_is_committed(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")

        async with async_session_factory() as other:
            assert await other.get(Task, created.id) is not None

    @pytest.mark.asyncio
    async def test_failed_commit_is_database_error(self, mock_db_session, identity_factory):
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk full"))

        with pytest.raises(DatabaseError):
            await self.service.create(mock_db_session, identity_factory(), "t", "d")

    @pytest.mark.asyncio
    async def test_list_is_owner_scoped_and_ordered(self, db_session, owners):
        alice, bob = owners
        first = await self.service.create(db_session, alice, "one", "1")
        await self.service.create(db_session, bob, "bob's", "b")
        second = await self.service.create(db_session, alice, "two", "2")

        alice_tasks = await self.service.list_for_user(db_session, alice)
        bob_tasks = await self.service.list_for_user(db_session, bob)

        assert [t.id for t in alice_tasks] == [first.id, second.id]
        assert [t.title for t in bob_tasks] == ["bob's"]

    @pytest.mark.asyncio
    async def test_list_store_failure(self, mock_db_session, identity_factory):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.list_for_user(mock_db_session, identity_factory())


class TestSingleTask:

    def setup_method(self):
        self.service = TaskService()

    @pytest.mark.asyncio
    async def test_get_own_task(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")

        fetched = await self.service.get(db_session, alice, created.id)

        assert fetched == created

    @pytest.mark.asyncio
    async def test_get_missing_task(self, db_session, owners):
        alice, _ = owners

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get(db_session, alice, 999)
        assert not isinstance(exc_info.value, ForbiddenError)

    @pytest.mark.asyncio
    async def test_get_foreign_task(self, db_session, owners):
        alice, bob = owners
        created = await self.service.create(db_session, alice, "t", "d")

        with pytest.raises(ForbiddenError):
            await self.service.get(db_session, bob, created.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("task_id", [0, -1, 2**31, 10**20])
    async def test_out_of_range_id_is_not_found(self, db_session, owners, task_id):
        alice, _ = owners

        with pytest.raises(NotFoundError):
            await self.service.get(db_session, alice, task_id)
        with pytest.raises(NotFoundError):
            await self.service.update(db_session, alice, task_id, {"title": "x"})
        with pytest.raises(NotFoundError):
            await self.service.delete(db_session, alice, task_id)

    @pytest.mark.asyncio
    async def test_get_store_failure(self, mock_db_session, identity_factory):
        mock_db_session.get.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.get(mock_db_session, identity_factory(), 1)


class TestUpdate:

    def setup_method(self):
        self.service = TaskService()

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "Buy milk", "Two litres")

        updated = await self.service.update(db_session, alice, created.id, {"completed": True})

        assert updated.completed is True
        assert updated.title == "Buy milk"
        assert updated.description == "Two litres"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_back_to_back_updates_advance_timestamp(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")

        first = await self.service.update(db_session, alice, created.id, {"title": "a"})
        second = await self.service.update(db_session, alice, created.id, {"title": "b"})

        assert created.updated_at < first.updated_at < second.updated_at

    @pytest.mark.asyncio
    async def test_empty_update_only_touches_timestamp(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")

        updated = await self.service.update(db_session, alice, created.id, {})

        assert (updated.title, updated.description, updated.completed) == ("t", "d", False)
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields", [{"title": ""}, {"description": "  "}, {"title": None}, {"completed": None}, {"title": "t" * 256}]
    )
    async def test_invalid_update_rejected(self, db_session, owners, fields):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")

        with pytest.raises(ValidationError):
            await self.service.update(db_session, alice, created.id, fields)

        task = await db_session.get(Task, created.id)
        assert (task.title, task.description, task.completed) == ("t", "d", False)

    @pytest.mark.asyncio
    async def test_update_unknown_field_ignored(self, db_session, owners):
        alice, bob = owners
        created = await self.service.create(db_session, alice, "t", "d")

        updated = await self.service.update(
            db_session, alice, created.id, {"user_id": bob.id, "title": "x"}
        )

        assert updated.user_id == alice.id
        assert updated.title == "x"

    @pytest.mark.asyncio
    async def test_update_foreign_task(self, db_session, owners):
        alice, bob = owners
        created = await self.service.create(db_session, alice, "t", "d")

        with pytest.raises(ForbiddenError):
            await self.service.update(db_session, bob, created.id, {"title": "mine now"})

        task = await db_session.get(Task, created.id)
        assert task.title == "t"

    @pytest.mark.asyncio
    async def test_update_missing_task(self, db_session, owners):
        alice, _ = owners
        with pytest.raises(NotFoundError):
            await self.service.update(db_session, alice, 999, {"title": "x"})


class TestDelete:

    def setup_method(self):
        self.service = TaskService()

    @pytest.mark.asyncio
    async def test_delete_own_task(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")

        await self.service.delete(db_session, alice, created.id)

        with pytest.raises(NotFoundError):
            await self.service.get(db_session, alice, created.id)

    @pytest.mark.asyncio
    async def test_delete_foreign_task_keeps_it(self, db_session, owners):
        alice, bob = owners
        created = await self.service.create(db_session, alice, "t", "d")

        with pytest.raises(ForbiddenError):
            await self.service.delete(db_session, bob, created.id)

        assert await self.service.get(db_session, alice, created.id) == created

    @pytest.mark.asyncio
    async def test_delete_twice(self, db_session, owners):
        alice, _ = owners
        created = await self.service.create(db_session, alice, "t", "d")
        await self.service.delete(db_session, alice, created.id)

        with pytest.raises(NotFoundError):
            await self.service.delete(db_session, alice, created.id)
