# ==============================================================================
# ENTITY DESCRIPTORS - Static Entity Metadata
# ==============================================================================
# Declared once per entity: key shape, datasource, default sort, column info
# ==============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, Union

from sqlalchemy import inspect


@dataclass(frozen=True)
class SourceInfo:
    """Where an entity's data comes from."""

    description: Optional[str] = None
    schema_name: Optional[str] = None
    system: Optional[str] = None
    owner: Optional[str] = None


@dataclass(frozen=True)
class ColumnInfo:
    """Documentation attached to one column."""

    display_name: Optional[str] = None
    description: Optional[str] = None
    data_type: Optional[str] = None
    format: Optional[str] = None
    validation_rules: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Everything the generic repository needs to know about an entity.

    Attributes:
        name: Entity name, also the prefix of operation identifiers
        model: Mapped SQLAlchemy class
        primary_key: Key field names, one for a simple key
        connection_name: Datasource holding the entity (default when None)
        default_sort_field: Sorted descending when a request gives no sort
    """

    name: str
    model: Type[Any]
    primary_key: Tuple[str, ...]
    connection_name: Optional[str] = None
    default_sort_field: Optional[str] = "created_at"
    source_info: SourceInfo = field(default_factory=SourceInfo)
    columns: Dict[str, ColumnInfo] = field(default_factory=dict)

    @property
    def is_composite(self) -> bool:
        return len(self.primary_key) > 1

    @property
    def table_name(self) -> str:
        return self.model.__table__.name

    @classmethod
    def builder(cls, model: Type[Any]) -> "EntityDescriptorBuilder":
        return EntityDescriptorBuilder(model)

    def describe(self) -> Dict[str, Any]:
        """Serializable metadata for the metadata endpoint."""
        mapper = inspect(self.model)
        fields: List[Dict[str, Any]] = []
        for attr in mapper.column_attrs:
            column = attr.columns[0]
            info = self.columns.get(attr.key, ColumnInfo())
            fields.append({
                "name": attr.key,
                "column": column.name,
                "type": info.data_type or str(column.type),
                "nullable": bool(column.nullable),
                "primary_key": attr.key in self.primary_key,
                "display_name": info.display_name,
                "description": info.description,
                "format": info.format,
                "validation_rules": list(info.validation_rules),
            })
        return {
            "entity": self.name,
            "table": self.table_name,
            "primary_key": list(self.primary_key),
            "connection": self.connection_name,
            "default_sort": self.default_sort_field,
            "source": {
                "description": self.source_info.description,
                "schema_name": self.source_info.schema_name,
                "system": self.source_info.system,
                "owner": self.source_info.owner,
            },
            "fields": fields,
        }


class EntityDescriptorBuilder:
    """
    Fluent construction of an EntityDescriptor.

    The primary key defaults to the mapped primary key of the model.

    Example:
        >>> descriptor = (
        ...     EntityDescriptor.builder(UserRole)
        ...     .named("user_role")
        ...     .primary_key("user_id", "role_id")
        ...     .default_sort(None)
        ...     .build()
        ... )
    """

    def __init__(self, model: Type[Any]) -> None:
        self._model = model
        self._name = model.__tablename__
        self._primary_key: Optional[Tuple[str, ...]] = None
        self._connection: Optional[str] = None
        self._default_sort: Optional[str] = "created_at"
        self._source = SourceInfo()
        self._columns: Dict[str, ColumnInfo] = {}

    def named(self, name: str) -> "EntityDescriptorBuilder":
        self._name = name
        return self

    def primary_key(self, *fields: Union[str, Sequence[str]]) -> "EntityDescriptorBuilder":
        flat: List[str] = []
        for item in fields:
            flat.extend([item] if isinstance(item, str) else list(item))
        self._primary_key = tuple(flat)
        return self

    def connection(self, name: Optional[str]) -> "EntityDescriptorBuilder":
        self._connection = name
        return self

    def default_sort(self, field_name: Optional[str]) -> "EntityDescriptorBuilder":
        self._default_sort = field_name
        return self

    def source_info(self, **kwargs) -> "EntityDescriptorBuilder":
        self._source = SourceInfo(**kwargs)
        return self

    def column(self, name: str, **kwargs) -> "EntityDescriptorBuilder":
        if "validation_rules" in kwargs:
            kwargs["validation_rules"] = tuple(kwargs["validation_rules"])
        self._columns[name] = ColumnInfo(**kwargs)
        return self

    def build(self) -> EntityDescriptor:
        """
        Validate and freeze.

        Raises:
            ValueError: If a key, sort or documented column is not mapped
        """
        mapped = {attr.key for attr in inspect(self._model).column_attrs}
        primary_key = self._primary_key or tuple(
            inspect(self._model).get_property_by_column(column).key
            for column in inspect(self._model).primary_key
        )
        if not primary_key:
            raise ValueError(f"Entity '{self._name}' has no primary key")
        unknown = [name for name in (*primary_key, *self._columns) if name not in mapped]
        if self._default_sort is not None and self._default_sort not in mapped:
            unknown.append(self._default_sort)
        if unknown:
            raise ValueError(f"Entity '{self._name}' has no fields {unknown}")
        return EntityDescriptor(
            name=self._name,
            model=self._model,
            primary_key=primary_key,
            connection_name=self._connection,
            default_sort_field=self._default_sort,
            source_info=self._source,
            columns=dict(self._columns),
        )
