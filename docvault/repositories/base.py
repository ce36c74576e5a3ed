"""
Base Repository

Generic repository pattern implementation for async SQLAlchemy CRUD operations.
Database driver failures are re-raised as ``ExternalServiceError`` so callers
deal with one error taxonomy.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import ExternalServiceError
from docvault.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


@contextmanager
def database_errors(action: str) -> Iterator[None]:
    """Translate SQLAlchemy failures raised inside the block."""
    try:
        yield
    except SQLAlchemyError as exc:
        detail = getattr(exc, "orig", None) or exc
        raise ExternalServiceError(
            f"{action} failed: {detail}",
            provider_name="postgres",
        ) from exc


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common CRUD operations.

    All methods expect an externally managed session (injected via FastAPI
    dependency or opened by a script) and commit their own work.

    Usage:
        class FileRepository(BaseRepository[FileRecord]):
            def __init__(self):
                super().__init__(FileRecord)
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def create(self, session: AsyncSession, obj_in: Any) -> ModelType:
        """
        Create a new record.

        Args:
            session: Active database session.
            obj_in: Pydantic schema or dict with entity data.

        Returns:
            The created entity with database-generated fields populated.
        """
        data = obj_in.model_dump() if hasattr(obj_in, "model_dump") else obj_in
        db_obj = self.model(**data)
        with database_errors(f"Insert into {self.model.__tablename__}"):
            session.add(db_obj)
            await session.commit()
            await session.refresh(db_obj)
        return db_obj

    async def get_by_id(
        self,
        session: AsyncSession,
        id: uuid.UUID,
    ) -> ModelType | None:
        """Get a record by primary key. Returns None if not found."""
        with database_errors(f"Select from {self.model.__tablename__}"):
            result = await session.execute(
                select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
            )
            return result.scalars().first()

    async def update(
        self,
        session: AsyncSession,
        db_obj: ModelType,
        obj_in: Any,
    ) -> ModelType:
        """
        Update a record with partial data.

        Args:
            session: Active database session.
            db_obj: Existing entity to update.
            obj_in: Pydantic schema or dict (only provided fields are updated).
        """
        update_data = (
            obj_in.model_dump(exclude_unset=True)
            if hasattr(obj_in, "model_dump")
            else obj_in
        )
        for field, value in update_data.items():
            setattr(db_obj, field, value)
        with database_errors(f"Update of {self.model.__tablename__}"):
            await session.commit()
            await session.refresh(db_obj)
        return db_obj
