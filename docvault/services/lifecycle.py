"""
Document Lifecycle

Explicit state machine for an uploaded document:

    requested -> access_checked -> stored -> row_created -> associated
        -> uploaded -> path_updated -> processed -> ready

``failed`` is absorbing and reachable from every state after
``row_created``. Each accepted transition is reported to a
``LifecycleObserver``; the default one logs it.
"""

from __future__ import annotations

import logging
import uuid
from typing import Final, Protocol

from docvault.core.errors import InvalidTransitionError
from docvault.models.enums import FileStatus

logger = logging.getLogger(__name__)

_HAPPY_PATH: Final[tuple[FileStatus, ...]] = (
    FileStatus.REQUESTED,
    FileStatus.ACCESS_CHECKED,
    FileStatus.STORED,
    FileStatus.ROW_CREATED,
    FileStatus.ASSOCIATED,
    FileStatus.UPLOADED,
    FileStatus.PATH_UPDATED,
    FileStatus.PROCESSED,
    FileStatus.READY,
)

_CAN_FAIL: Final[frozenset[FileStatus]] = frozenset(
    _HAPPY_PATH[_HAPPY_PATH.index(FileStatus.ROW_CREATED) :]
) - {FileStatus.READY}


def _build_transitions() -> dict[FileStatus, frozenset[FileStatus]]:
    table: dict[FileStatus, set[FileStatus]] = {state: set() for state in FileStatus}
    for current, following in zip(_HAPPY_PATH, _HAPPY_PATH[1:]):
        table[current].add(following)
    for state in _CAN_FAIL:
        table[state].add(FileStatus.FAILED)
    # Re-processing an already uploaded file starts again from path_updated
    table[FileStatus.READY].add(FileStatus.PATH_UPDATED)
    return {state: frozenset(targets) for state, targets in table.items()}


TRANSITIONS: Final[dict[FileStatus, frozenset[FileStatus]]] = _build_transitions()

TERMINAL_STATES: Final[frozenset[FileStatus]] = frozenset(
    {FileStatus.READY, FileStatus.FAILED}
)


def can_transition(current: FileStatus, target: FileStatus) -> bool:
    return target in TRANSITIONS[current]


class LifecycleObserver(Protocol):
    """Hook called after every accepted transition."""

    def on_transition(
        self,
        file_id: uuid.UUID | None,
        previous: FileStatus,
        current: FileStatus,
        detail: str | None = None,
    ) -> None: ...


class LoggingLifecycleObserver:
    """Emits one structured log record per transition."""

    def on_transition(
        self,
        file_id: uuid.UUID | None,
        previous: FileStatus,
        current: FileStatus,
        detail: str | None = None,
    ) -> None:
        level = logging.WARNING if current is FileStatus.FAILED else logging.INFO
        logger.log(
            level,
            "File %s: %s -> %s%s",
            file_id or "-",
            previous.value,
            current.value,
            f" ({detail})" if detail else "",
            extra={
                "file_id": str(file_id) if file_id else None,
                "from_state": previous.value,
                "to_state": current.value,
            },
        )


class DocumentLifecycle:
    """
    Tracks one document through ingestion.

    Usage::

        lifecycle = DocumentLifecycle(observer)
        lifecycle.advance(FileStatus.ACCESS_CHECKED)
        ...
        lifecycle.bind(file_id)  # once the row exists
    """

    def __init__(
        self,
        observer: LifecycleObserver | None = None,
        state: FileStatus = FileStatus.REQUESTED,
        file_id: uuid.UUID | None = None,
    ) -> None:
        self._observer = observer or LoggingLifecycleObserver()
        self._state = state
        self._file_id = file_id

    @property
    def state(self) -> FileStatus:
        return self._state

    @property
    def file_id(self) -> uuid.UUID | None:
        return self._file_id

    def bind(self, file_id: uuid.UUID) -> None:
        self._file_id = file_id

    def advance(self, target: FileStatus, detail: str | None = None) -> FileStatus:
        """Move to ``target`` or raise ``InvalidTransitionError``."""
        if not can_transition(self._state, target):
            raise InvalidTransitionError(
                f"Illegal file transition {self._state.value} -> {target.value}"
            )
        previous, self._state = self._state, target
        self._observer.on_transition(self._file_id, previous, target, detail)
        return target

    def fail(self, detail: str | None = None) -> None:
        """Move to ``failed`` when allowed; earlier states have nothing to compensate."""
        if can_transition(self._state, FileStatus.FAILED):
            self.advance(FileStatus.FAILED, detail)
