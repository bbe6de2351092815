import logging
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from uuid import UUID

from sqlmodel import SQLModel, func, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ....core.exceptions import ConflictError, DatabaseError, NotFoundError
from ....utils.date_utils import get_current_timestamp

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    Every query is scoped by ``org_id``; a record of one organization is
    never returned to another.

    Example:
        repo = SyncEventRepository(session)
        pending = await repo.list(org_id, sync_status="pending")
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, obj_in: Union[SQLModel, Dict[str, Any]]) -> ModelType:
        """
        Create a new record.

        Args:
            obj_in: Create schema instance or dictionary with field values

        Returns:
            Created model instance

        Raises:
            ConflictError: If the record conflicts with existing data
            DatabaseError: If creation fails
        """
        try:
            # table models skip validation on __init__, model_validate does not
            db_obj = self.model.model_validate(obj_in)

            self.session.add(db_obj)
            await self.session.flush()
            await self.session.refresh(db_obj)

            logger.debug(f"Created {self.model.__name__} with ID: {db_obj.id}")
            return db_obj

        except IntegrityError as e:
            logger.error(f"Integrity error creating {self.model.__name__}: {e}")
            raise ConflictError(f"{self.model.__name__} conflicts with existing data: {e}", resource=self.model.__name__)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise DatabaseError(f"Failed to create {self.model.__name__}: {str(e)}", operation="create")

    async def get(self, id: UUID) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        try:
            statement = select(self.model).where(self.model.id == id)
            result = await self.session.exec(statement)
            return result.first()

        except SQLAlchemyError as e:
            logger.error(f"Failed to get {self.model.__name__} by ID {id}: {e}")
            raise DatabaseError(f"Failed to get {self.model.__name__}: {str(e)}", operation="get")

    async def get_or_404(self, id: UUID, org_id: Optional[str] = None) -> ModelType:
        """
        Get a record by ID or raise 404 error.

        When ``org_id`` is given, a record of another organization is
        reported as missing.

        Raises:
            NotFoundError: If record not found
        """
        obj = await self.get(id)
        if not obj or (org_id is not None and obj.org_id != org_id):
            raise NotFoundError(resource=self.model.__name__, resource_id=id)
        return obj

    async def list(
        self,
        org_id: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        skip: int = 0,
        limit: Optional[int] = None,
        **filters
    ) -> List[ModelType]:
        """
        List an organization's records, newest first by default.

        Keyword filters with a value of None are ignored, so callers can pass
        optional query parameters straight through.
        """
        try:
            statement = select(self.model).where(self.model.org_id == org_id)
            statement = self._apply_filters(statement, filters, operation="list")

            order_column = getattr(self.model, order_by)
            statement = statement.order_by(order_column.desc() if descending else order_column.asc())

            if skip:
                statement = statement.offset(skip)
            if limit is not None:
                statement = statement.limit(limit)

            result = await self.session.exec(statement)
            return list(result.all())

        except SQLAlchemyError as e:
            logger.error(f"Failed to list {self.model.__name__}: {e}")
            raise DatabaseError(f"Failed to list {self.model.__name__}: {str(e)}", operation="list")

    async def update(self, id: UUID, values: Dict[str, Any], org_id: Optional[str] = None) -> ModelType:
        """
        Update a record by ID and stamp ``updated_at``.

        Raises:
            NotFoundError: If record not found
            DatabaseError: If update fails
        """
        db_obj = await self.get_or_404(id, org_id)
        try:
            for key, value in values.items():
                if not hasattr(db_obj, key):
                    raise DatabaseError(f"{self.model.__name__} has no column '{key}'", operation="update")
                setattr(db_obj, key, value.value if isinstance(value, Enum) else value)

            if hasattr(db_obj, "updated_at"):
                db_obj.updated_at = get_current_timestamp()

            self.session.add(db_obj)
            await self.session.flush()
            await self.session.refresh(db_obj)

            logger.debug(f"Updated {self.model.__name__} with ID: {id}")
            return db_obj

        except SQLAlchemyError as e:
            logger.error(f"Failed to update {self.model.__name__} {id}: {e}")
            raise DatabaseError(f"Failed to update {self.model.__name__}: {str(e)}", operation="update")

    async def count(self, org_id: str, **filters) -> int:
        """Count an organization's records matching the filters."""
        try:
            statement = select(func.count()).select_from(self.model).where(self.model.org_id == org_id)
            statement = self._apply_filters(statement, filters, operation="count")
            result = await self.session.exec(statement)
            return result.one()

        except SQLAlchemyError as e:
            logger.error(f"Failed to count {self.model.__name__}: {e}")
            raise DatabaseError(f"Failed to count {self.model.__name__}: {str(e)}", operation="count")

    def _apply_filters(self, statement, filters: Dict[str, Any], operation: str):
        """Add an equality condition per filter; None values are skipped."""
        for field_name, value in filters.items():
            if value is None:
                continue
            column = getattr(self.model, field_name, None)
            if column is None:
                raise DatabaseError(f"{self.model.__name__} has no column '{field_name}'", operation=operation)
            if isinstance(value, Enum):
                value = value.value
            statement = statement.where(column == value)
        return statement
