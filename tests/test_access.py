"""
Access Gate and Workspace Assignment Unit Tests

Verifies grant checks (direct workspace, storage path, any-of) and the
concurrent best-effort assignment of workspaces to an account.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from conftest import OTHER_USER_ID, USER_ID, WORKSPACE_ID, FakeAccessRepository

from docvault.core.errors import AuthorizationError, ExternalServiceError
from docvault.services.access import AccessGate, workspace_id_from_path
from docvault.services.accounts import assign_workspaces

# ---------------------------------------------------------------------------
# Access gate
# ---------------------------------------------------------------------------


class TestAccessGate:
    """Tests for grant lookups."""

    @pytest.mark.asyncio
    async def test_grant_returned(self, gate: AccessGate, session) -> None:  # noqa: ANN001
        grant = await gate.authorize(session, USER_ID, WORKSPACE_ID)
        assert grant.workspace_id == WORKSPACE_ID
        assert grant.role == "owner"

    @pytest.mark.asyncio
    async def test_rejection(self, gate: AccessGate, session) -> None:  # noqa: ANN001
        with pytest.raises(AuthorizationError, match="No access"):
            await gate.authorize(session, OTHER_USER_ID, WORKSPACE_ID)

    @pytest.mark.asyncio
    async def test_authorize_path(self, gate: AccessGate, session) -> None:  # noqa: ANN001
        grant = await gate.authorize_path(session, USER_ID, f"{WORKSPACE_ID}/report.pdf")
        assert grant.user_id == USER_ID

    @pytest.mark.asyncio
    async def test_authorize_any(
        self,
        gate: AccessGate,
        access_repo: FakeAccessRepository,
        session,  # noqa: ANN001
    ) -> None:
        other_ws = uuid.uuid4()
        access_repo.grant(OTHER_USER_ID, other_ws, role="member")

        grant = await gate.authorize_any(session, OTHER_USER_ID, [WORKSPACE_ID, other_ws])
        assert grant.workspace_id == other_ws
        assert grant.role == "member"

    @pytest.mark.asyncio
    async def test_authorize_any_empty(self, gate: AccessGate, session) -> None:  # noqa: ANN001
        with pytest.raises(AuthorizationError):
            await gate.authorize_any(session, USER_ID, [])


def test_workspace_id_from_path() -> None:
    assert workspace_id_from_path(f"{WORKSPACE_ID}/a.txt") == WORKSPACE_ID
    with pytest.raises(AuthorizationError):
        workspace_id_from_path("not-a-uuid/a.txt")


# ---------------------------------------------------------------------------
# Workspace assignment
# ---------------------------------------------------------------------------


class FlakyAccessRepository(FakeAccessRepository):
    """Fails for one workspace, tracks how many inserts overlapped."""

    def __init__(self, failing: uuid.UUID) -> None:
        super().__init__()
        self.failing = failing
        self.in_flight = 0
        self.max_in_flight = 0

    async def add_account_workspace(self, session, account_id, workspace_id) -> None:  # noqa: ANN001
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        if workspace_id == self.failing:
            raise ExternalServiceError("Insert into account_workspaces failed: fk violation")
        await super().add_account_workspace(session, account_id, workspace_id)


class TestAssignWorkspaces:
    """Concurrent, best-effort assignment."""

    @pytest.mark.asyncio
    async def test_failure_does_not_roll_back_siblings(self) -> None:
        good_a, bad, good_b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        account_id = uuid.uuid4()
        repo = FlakyAccessRepository(failing=bad)
        sessions: list[AsyncMock] = []

        @asynccontextmanager
        async def session_factory():  # noqa: ANN202
            session = AsyncMock()
            sessions.append(session)
            yield session

        report = await assign_workspaces(
            session_factory,  # type: ignore[arg-type]
            account_id,
            [good_a, bad, good_b, good_a],
            repository=repo,  # type: ignore[arg-type]
        )

        assert report.assigned == [good_a, good_b]
        assert set(report.failed) == {bad}
        assert "fk violation" in report.failed[bad]
        assert not report.ok
        assert sorted(repo.account_workspaces) == sorted(
            [(account_id, good_a), (account_id, good_b)]
        )
        assert len(sessions) == 3  # one session per workspace, duplicates dropped
        assert repo.max_in_flight == 3
