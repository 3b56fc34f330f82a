# ==============================================================================
# GENERIC REPOSITORY SERVICE - Filtered CRUD over Any Entity
# ==============================================================================
# find_all / find_by_key / create / update / delete executed through the
# resilience layer and returned as tagged results
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from contextlib import nullcontext
from datetime import datetime
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

from pydantic import BaseModel
from sqlalchemy import and_, delete, func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from catalog_backend.core.exceptions import (
    ConnectivityError,
    DatabaseError,
    DataSourceNotFoundError,
    NotFoundError,
    ValidationError,
)
from catalog_backend.database.registry import DataSourceRegistry
from catalog_backend.database.resilience import ConnectionResilience, RecoveryOutcome
from catalog_backend.filters.models import (
    Filter,
    PaginatedResult,
    PaginationOptions,
    SortDirection,
    SortOption,
)
from catalog_backend.filters.translator import QueryTranslator
from catalog_backend.services.entities import EntityDescriptor
from catalog_backend.services.results import Err, ErrorKind, Ok, OperationResult

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType")
T = TypeVar("T")

KeyValue = Union[Any, Mapping[str, Any]]
Payload = Union[Mapping[str, Any], BaseModel]

# Errors that cross the storage boundary and become Err results
STORAGE_ERRORS = (SQLAlchemyError, DatabaseError, OSError, asyncio.TimeoutError)


class GenericRepositoryService(Generic[ModelType]):
    """
    CRUD, filtering, sorting and pagination for one entity.

    Every operation runs through :meth:`execute_database_operation`, so
    storage failures come back as :class:`Err` values and never raise.
    Key validation happens first and raises ValidationError before any
    query is issued.

    Attributes:
        descriptor: Static metadata of the entity

    Example:
        >>> service = GenericRepositoryService(product_descriptor, registry, resilience)
        >>> result = await service.find_all(
        ...     filter=BaseFilter(field="price", operator="gte", value=1000),
        ...     pagination=PaginationOptions(page=1, limit=20),
        ... )
        >>> if result.success:
        ...     print(result.value.total)
    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        registry: DataSourceRegistry,
        resilience: ConnectionResilience,
        semaphore: Optional[asyncio.Semaphore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.descriptor = descriptor
        self._registry = registry
        self._resilience = resilience
        self._semaphore = semaphore
        self._translator = QueryTranslator.for_model(descriptor.model, now=clock)
        self._fields = {
            attr.key: getattr(descriptor.model, attr.key)
            for attr in inspect(descriptor.model).column_attrs
        }
        self._relations = [rel.key for rel in inspect(descriptor.model).relationships]

    @property
    def model(self) -> Any:
        return self.descriptor.model

    @property
    def entity_name(self) -> str:
        return self.descriptor.name

    @property
    def connection_name(self) -> Optional[str]:
        return self.descriptor.connection_name

    @property
    def relations(self) -> List[str]:
        """Relationship names that find_by_key can expand."""
        return list(self._relations)

    # ==========================================================================
    # QUERY BUILDING
    # ==========================================================================

    def build_query(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[Sequence[SortOption]] = None,
    ) -> Select:
        """
        Filtered and ordered select over the entity.

        Sort fields that are not mapped are skipped. Without a usable sort
        the default sort field is used descending, or the key ascending.
        """
        stmt = select(self.model)
        if filter is not None:
            condition = self._translator.translate(filter)
            if condition is not None:
                stmt = stmt.where(condition.to_clause())

        order_by = []
        for option in sort or []:
            column = self._fields.get(option.field)
            if column is None:
                logger.debug(f"Ignoring sort on unknown field '{option.field}'")
                continue
            order_by.append(column.desc() if option.direction == SortDirection.DESC else column.asc())
        if not order_by:
            default = self.descriptor.default_sort_field
            if default is not None:
                order_by.append(self._fields[default].desc())
            else:
                order_by.extend(self._fields[name].asc() for name in self.descriptor.primary_key)
        return stmt.order_by(*order_by)

    def key_condition(self, key: KeyValue):
        """
        Equality over every key field.

        Args:
            key: Scalar for a simple key, field-to-value mapping otherwise

        Raises:
            ValidationError: If the key does not match the configured shape
        """
        fields = self.descriptor.primary_key
        if isinstance(key, Mapping):
            missing = [name for name in fields if key.get(name) is None]
            extra = [name for name in key if name not in fields]
            if missing or extra:
                errors: Dict[str, Any] = {}
                errors.update({name: "required key field" for name in missing})
                errors.update({name: "not a key field" for name in extra})
                raise ValidationError(
                    message=f"Invalid primary key for {self.entity_name}",
                    errors=errors,
                )
            values = {name: key[name] for name in fields}
        else:
            if self.descriptor.is_composite:
                raise ValidationError(
                    message=f"{self.entity_name} has a composite key {list(fields)}",
                    errors={name: "required key field" for name in fields},
                )
            if key is None:
                raise ValidationError(
                    message=f"Missing primary key for {self.entity_name}",
                    errors={fields[0]: "required key field"},
                )
            values = {fields[0]: key}
        return and_(*(self._fields[name] == value for name, value in values.items()))

    def expand_options(self, expand: Sequence[str]) -> List[Any]:
        """Eager-load options for the known relationships among `expand`."""
        options = []
        for name in dict.fromkeys(expand):
            if name not in self._relations:
                logger.debug(f"Ignoring expansion of unknown relation '{name}'")
                continue
            options.append(selectinload(getattr(self.model, name)))
        return options

    def _column_values(self, data: Payload) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        unknown = [name for name in data if name not in self._fields]
        if unknown:
            raise ValidationError(
                message=f"Unknown fields for {self.entity_name}",
                errors={name: "unknown field" for name in unknown},
            )
        return dict(data)

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    async def find_all(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[Sequence[SortOption]] = None,
        pagination: Optional[PaginationOptions] = None,
    ) -> OperationResult[PaginatedResult[ModelType]]:
        """
        One page of matching rows and the total match count.

        The page and the count are fetched concurrently on separate
        sessions over the same filtered query.

        Returns:
            Ok(PaginatedResult) carrying the rendered query, or Err
        """
        pagination = pagination or PaginationOptions()
        stmt = self.build_query(filter, sort)
        page_stmt = stmt.offset(pagination.skip).limit(pagination.limit)
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())

        async def run(session: AsyncSession) -> PaginatedResult[ModelType]:
            datasource = self._registry.get(self.connection_name)
            rendered = str(page_stmt.compile(dialect=datasource.dialect))
            logger.debug(f"{self.entity_name}.find_all: {rendered}")

            async def fetch_page() -> List[ModelType]:
                return list((await session.scalars(page_stmt)).all())

            async def fetch_total() -> int:
                async with datasource.session() as count_session:
                    return (await count_session.execute(count_stmt)).scalar_one()

            rows, total = await asyncio.gather(fetch_page(), fetch_total())
            return PaginatedResult.build(rows, total, pagination, rendered_query=rendered)

        return await self.execute_database_operation("find_all", run, transactional=False)

    async def find_by_key(
        self,
        key: KeyValue,
        expand: Sequence[str] = (),
    ) -> OperationResult[Optional[ModelType]]:
        """
        Row with the given key, Ok(None) when absent.

        Relationships named in `expand` are loaded with the row, so they
        can be read after the session is closed. Unknown names are skipped.
        """
        condition = self.key_condition(key)
        stmt = select(self.model).where(condition).options(*self.expand_options(expand)).limit(1)

        async def run(session: AsyncSession) -> Optional[ModelType]:
            return (await session.scalars(stmt)).first()

        return await self.execute_database_operation("find_by_key", run, transactional=False)

    async def create_one(self, data: Payload) -> OperationResult[ModelType]:
        values = self._column_values(data)

        async def run(session: AsyncSession) -> ModelType:
            instance = self.model(**values)
            session.add(instance)
            await session.flush()
            await session.refresh(instance)
            return instance

        return await self.execute_database_operation("create_one", run)

    async def create_many(self, items: Sequence[Payload]) -> OperationResult[List[ModelType]]:
        """Insert all rows in one transaction; none persist if any fails."""
        rows = [self._column_values(item) for item in items]

        async def run(session: AsyncSession) -> List[ModelType]:
            instances = [self.model(**values) for values in rows]
            session.add_all(instances)
            await session.flush()
            for instance in instances:
                await session.refresh(instance)
            return instances

        return await self.execute_database_operation("create_many", run)

    async def update(self, key: KeyValue, patch: Payload) -> OperationResult[ModelType]:
        """
        Merge `patch` onto the row with `key`.

        Returns:
            Ok(updated row), or Err of kind NOT_FOUND when absent
        """
        condition = self.key_condition(key)
        values = self._column_values(patch)

        async def run(session: AsyncSession) -> ModelType:
            instance = (await session.scalars(select(self.model).where(condition).limit(1))).first()
            if instance is None:
                raise NotFoundError(
                    message=f"{self.entity_name} not found",
                    resource_type=self.entity_name,
                    resource_id=key,
                )
            for name, value in values.items():
                setattr(instance, name, value)
            await session.flush()
            await session.refresh(instance)
            return instance

        return await self.execute_database_operation("update", run)

    async def delete(self, key: KeyValue) -> OperationResult[bool]:
        """
        Delete the row with `key`.

        Simple keys delete directly; composite keys load the row first.

        Returns:
            Ok(True) when a row was removed, Ok(False) otherwise
        """
        condition = self.key_condition(key)

        async def run(session: AsyncSession) -> bool:
            if not self.descriptor.is_composite:
                result = await session.execute(delete(self.model).where(condition))
                return (result.rowcount or 0) > 0
            instance = (await session.scalars(select(self.model).where(condition).limit(1))).first()
            if instance is None:
                return False
            await session.delete(instance)
            await session.flush()
            return True

        return await self.execute_database_operation("delete", run)

    # ==========================================================================
    # EXECUTION
    # ==========================================================================

    async def execute_database_operation(
        self,
        operation: str,
        run: Callable[[AsyncSession], Awaitable[T]],
        transactional: bool = True,
    ) -> OperationResult[T]:
        """
        Run `run` on a session of the entity's connection.

        Uses a session from the resilience layer (committed when
        `transactional`), or the data source's own session scope when none
        could be obtained from a live engine. A connection that stayed down
        through recovery fails straight away, without a second retry run.
        Successes clear error state; storage failures go to the resilience
        layer and come back as Err.

        Args:
            operation: Operation name, prefixed with the entity name to
                form the operation identifier
            run: Work to do with the session
            transactional: Commit on success

        Returns:
            Ok(value) or Err
        """
        operation_id = f"{self.entity_name}.{operation}"
        async with self._semaphore or nullcontext():
            recover = True
            try:
                session = await self._resilience.get_session_for_operation(self.connection_name)
                if session is not None:
                    value = await self._run_in_session(session, run, transactional)
                else:
                    datasource = self._registry.get(self.connection_name)
                    if not datasource.is_initialized:
                        # get_session_for_operation already spent the retry budget
                        recover = False
                        raise ConnectivityError(
                            f"Data source '{datasource.name}' is unavailable",
                            connection_name=datasource.name,
                        )
                    logger.warning(f"No session for '{operation_id}', using fallback path")
                    async with datasource.session() as fallback:
                        value = await run(fallback)
            except NotFoundError as e:
                return Err(
                    message=e.message,
                    error=str(e),
                    kind=ErrorKind.NOT_FOUND,
                    error_type=type(e).__name__,
                )
            except DataSourceNotFoundError:
                raise
            except STORAGE_ERRORS as e:
                outcome = await self._resilience.handle_database_error(
                    e, operation_id, self.connection_name, recover=recover
                )
                return Err(
                    message=outcome.message,
                    error=str(e),
                    kind=_error_kind(e, outcome),
                    recovered=outcome.recovered,
                    error_type=type(e).__name__,
                )

            await self._resilience.register_successful_operation(operation_id, self.connection_name)
            return Ok(value)

    @staticmethod
    async def _run_in_session(
        session: AsyncSession,
        run: Callable[[AsyncSession], Awaitable[T]],
        transactional: bool,
    ) -> T:
        try:
            value = await run(session)
            if transactional:
                await session.commit()
            return value
        except Exception:
            try:
                await session.rollback()
            except STORAGE_ERRORS as rollback_error:
                logger.warning(f"Rollback failed: {rollback_error}")
            raise
        finally:
            await session.close()


def _error_kind(error: BaseException, outcome: RecoveryOutcome) -> ErrorKind:
    if outcome.connectivity:
        return ErrorKind.CONNECTIVITY
    if isinstance(error, IntegrityError):
        return ErrorKind.CONSTRAINT
    return ErrorKind.QUERY
