"""Generic persistence operations shared by every resource service."""

import logging
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, ClassVar, Generic, Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, DuplicateKeyError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..core.query_features import QueryFeatures, api_name
from ..core.database import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

_PG_DUPLICATE_KEY = re.compile(r"Key \((?P<fields>[^)]+)\)=\((?P<values>[^)]*)\)")
_SQLITE_DUPLICATE_KEY = re.compile(r"UNIQUE constraint failed: (?P<columns>[\w., ]+)")


def column_values(data: Mapping[str, Any]) -> dict[str, Any]:
    """Unwrap enum members so they bind as plain column values."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}


class CRUDService(Generic[ModelT]):
    """
    Find, insert, update and delete for one mapped model.

    Subclasses pick the model and plug entity-specific steps into
    ``build`` (before insert), ``apply_changes`` (before update),
    ``after_write`` and ``after_delete``.
    """

    model: ClassVar[type]
    resource_type: ClassVar[str] = "document"
    # Columns that may not be filtered or sorted on
    hidden_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, db: AsyncSession):
        self.db = db

    # Query construction

    def base_query(self, **scope: Any) -> Select:
        """
        Statement every read starts from.

        Args:
            scope: Column equality constraints, e.g. ``tour_id=...``
        """
        stmt = select(self.model)
        for key, value in scope.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    def populate_options(self) -> list:
        """Loader options for the relation populated by single-document reads."""
        return []

    def query_features(
        self,
        params: Mapping[str, Any],
        fields: Optional[Iterable[str]] = None,
        **scope: Any,
    ) -> QueryFeatures:
        """Wrap the scoped base query in a ``QueryFeatures`` builder."""
        return QueryFeatures(
            self.base_query(**scope),
            params,
            self.model,
            fields=fields,
            hidden=self.hidden_fields,
        )

    # Reads

    async def find(self, features: QueryFeatures) -> list[ModelT]:
        """
        Execute a shaped list query.

        Args:
            features: Builder with filter/sort/fields/pagination applied

        Returns:
            Matching entities
        """
        result = await self.db.execute(features.statement)
        return list(result.scalars().unique())

    async def find_by_id(self, entity_id: UUID, populate: bool = False, **scope: Any) -> Optional[ModelT]:
        """
        Get entity by ID.

        Args:
            entity_id: Entity ID to search for
            populate: Also load the relation from ``populate_options``
            scope: Extra arguments for ``base_query``

        Returns:
            Entity if found, None otherwise
        """
        stmt = self.base_query(**scope).where(self.model.id == entity_id)
        if populate:
            stmt = stmt.options(*self.populate_options())
        stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id_or_raise(self, entity_id: UUID, populate: bool = False, **scope: Any) -> ModelT:
        """
        Get entity by ID or raise NotFoundError.

        Raises:
            NotFoundError: If the entity does not exist
        """
        entity = await self.find_by_id(entity_id, populate=populate, **scope)
        if entity is None:
            logger.warning(
                "Document not found",
                extra={"resource_type": self.resource_type, "id": str(entity_id)}
            )
            raise NotFoundError(resource_type=self.resource_type, resource_id=str(entity_id))
        return entity

    # Writes

    async def build(self, payload: BaseModel) -> ModelT:
        """Create the entity for an insert; runs before anything is written."""
        return self.model(**column_values(payload.model_dump()))

    async def apply_changes(self, entity: ModelT, changes: dict[str, Any]) -> None:
        """Apply a partial update to a loaded entity."""
        columns = self.model.__table__.columns
        values = column_values(changes)
        for key, value in values.items():
            if value is None and key in columns and not columns[key].nullable:
                raise ValidationError(f"Invalid input data. {api_name(key)} cannot be null")
        for key, value in values.items():
            setattr(entity, key, value)

    async def after_write(self, entity: ModelT) -> None:
        """Runs after an insert or update has been committed."""

    async def after_delete(self, entity: ModelT) -> None:
        """Runs after a delete has been committed."""

    async def reload(self, entity_id: UUID) -> ModelT:
        """Fetch a just-written entity with its relations loaded."""
        return await self.get_by_id_or_raise(entity_id)

    async def insert(self, payload: BaseModel) -> ModelT:
        """
        Validate and insert a new entity.

        Args:
            payload: Validated creation request

        Returns:
            The stored entity, reloaded with its relations

        Raises:
            DuplicateKeyError: If a unique constraint is violated
        """
        entity = await self.build(payload)
        self.db.add(entity)
        await self._commit()

        logger.info(
            "Document created",
            extra={"resource_type": self.resource_type, "id": str(entity.id)}
        )
        metrics_collector.record_document_created(self.resource_type)

        await self.after_write(entity)
        return await self.reload(entity.id)

    async def update_by_id(self, entity_id: UUID, payload: BaseModel) -> Optional[ModelT]:
        """
        Apply a partial update with validation rules re-checked.

        Returns:
            Updated entity, or None if no entity has that ID

        Raises:
            ConflictError: If another request updated the entity after it was read
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            return None

        changes = payload.model_dump(exclude_unset=True)
        await self.apply_changes(entity, changes)
        await self._commit()

        logger.info(
            "Document updated",
            extra={
                "resource_type": self.resource_type,
                "id": str(entity_id),
                "fields": sorted(changes),
            }
        )

        await self.after_write(entity)
        return await self.reload(entity_id)

    async def delete_by_id(self, entity_id: UUID) -> bool:
        """
        Delete an entity.

        Returns:
            True if deleted, False if no entity has that ID
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            return False

        await self.db.delete(entity)
        await self._commit()

        logger.info(
            "Document deleted",
            extra={"resource_type": self.resource_type, "id": str(entity_id)}
        )
        metrics_collector.record_document_deleted(self.resource_type)

        await self.after_delete(entity)
        return True

    async def _commit(self) -> None:
        """Commit, translating constraint violations and version conflicts into client errors."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "Write rejected by database constraint",
                extra={"resource_type": self.resource_type, "error": str(e.orig)}
            )
            raise self._constraint_error(e) from e
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(
                "Write rejected by version check",
                extra={"resource_type": self.resource_type, "error": str(e)}
            )
            raise ConflictError() from e

    def _constraint_error(self, error: IntegrityError) -> Exception:
        message = str(error.orig)

        match = _PG_DUPLICATE_KEY.search(message)
        if match and "duplicate key" in message:
            fields = ", ".join(api_name(f.strip()) for f in match.group("fields").split(","))
            return DuplicateKeyError(field=fields, value=match.group("values"))

        match = _SQLITE_DUPLICATE_KEY.search(message)
        if match:
            columns = [c.strip().rsplit(".", 1)[-1] for c in match.group("columns").split(",")]
            return DuplicateKeyError(field=", ".join(api_name(c) for c in columns))

        return ValidationError(f"Invalid input data. {message}")
