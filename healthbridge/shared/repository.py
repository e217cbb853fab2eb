"""
Base repository with the table operations the pipeline relies on.

The datastore is treated as a table service with four operations:
read-by-key, upsert-by-key, insert and delete-by-key. Each call is
committed on its own by the caller; there are no multi-table transactions.

Usage:
    class ConsentRepository(BaseRepository[Consent]):
        def __init__(self, db: AsyncSession):
            super().__init__(db, Consent)

        async def get_for(self, owner_id, scope, purpose) -> Consent | None:
            return await self.get_by(owner_id=owner_id, scope=scope, purpose=purpose)
"""

from typing import Any, Generic, Iterable, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class BaseRepository(Generic[T]):
    """
    Base repository for database operations.

    All methods are async for use with AsyncSession.
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        """
        Initialize repository.

        Args:
            db: Async database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    async def get_by_id(self, id: str | int) -> T | None:
        """Get entity by primary key ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by(self, **kwargs) -> T | None:
        """
        Get single entity by arbitrary field values (read-by-key).

        Args:
            **kwargs: Field name-value pairs to filter by

        Returns:
            Matching entity or None
        """
        query = select(self.model)
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_all(self, **kwargs) -> list[T]:
        """Get all entities matching criteria."""
        query = select(self.model)
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create(self, **kwargs) -> T:
        """
        Insert a new entity.

        Args:
            **kwargs: Field values for new entity

        Returns:
            Created entity with generated ID
        """
        entity = self.model(**kwargs)
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def update(self, entity: T, **kwargs) -> T:
        """Update entity fields."""
        for key, value in kwargs.items():
            setattr(entity, key, value)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def upsert(
        self,
        values: dict[str, Any],
        conflict_columns: Iterable[str],
        update_columns: Optional[Iterable[str]] = None,
    ) -> T:
        """
        Insert or overwrite the row identified by `conflict_columns`.

        Runs a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING, so
        concurrent upserts on the same key end with the last writer's values
        and never with two rows.

        Args:
            values: Column values (column names equal attribute names)
            conflict_columns: Columns of the unique key
            update_columns: Columns overwritten on conflict
                            (default: every given column except the key)

        Returns:
            The stored entity, refreshed from RETURNING
        """
        conflict_columns = list(conflict_columns)
        if update_columns is None:
            update_columns = [c for c in values if c not in conflict_columns]

        dialect = self.db.get_bind().dialect.name
        insert_fn = _UPSERT_INSERTS.get(dialect)
        if insert_fn is None:
            raise NotImplementedError(f"Upsert not supported for dialect {dialect}")

        stmt = insert_fn(self.model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=conflict_columns,
            set_={column: stmt.excluded[column] for column in update_columns},
        )
        result = await self.db.scalars(
            stmt.returning(self.model),
            execution_options={"populate_existing": True},
        )
        return result.one()

    async def delete(self, entity: T) -> None:
        """Delete entity."""
        await self.db.delete(entity)
        await self.db.flush()

    async def delete_by(self, **kwargs) -> int:
        """
        Delete rows matching the key (delete-by-key).

        Returns:
            Number of rows deleted
        """
        stmt = delete(self.model)
        for key, value in kwargs.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        result = await self.db.execute(stmt)
        return result.rowcount or 0
