"""
Base repository with shared create, update and count helpers.
"""

from typing import Any, Callable, Generic, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from devlog.models.db import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic repository for a single model class."""

    def __init__(self, model: Type[ModelType], session: Session):
        self.model = model
        self.session = session

    def create(self, **kwargs: Any) -> ModelType:
        """Create and flush a new record."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        self.session.flush()
        return instance

    def update(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """Update attributes of an existing record."""
        for key, value in kwargs.items():
            setattr(instance, key, value)
        self.session.flush()
        return instance

    def count(self) -> int:
        """Count all records."""
        stmt = select(func.count()).select_from(self.model)
        return self.session.execute(stmt).scalar_one()

    def _insert(self) -> Callable[..., Any]:
        """Return the dialect ``insert`` that supports ON CONFLICT."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upsert not supported for dialect {dialect}")
        return insert
