"""
Type metadata registry.

Reflects a mapped dataclass once and caches the resulting immutable
``Metadata`` for the life of the process. Every DAO working on the same type
shares the same instance.
"""
import dataclasses
import enum
import logging
import threading
import types
import typing
from typing import Any

from bulkmapper.exceptions import MappingError
from bulkmapper.mapping import COLUMN_KEY, TABLE_ATTR, ColumnInfo

__all__ = [
    'Attribute',
    'Metadata',
    'metadata_for',
    'clear_registry',
]

logger = logging.getLogger(__name__)

_registry: dict[type, 'Metadata'] = {}
_registry_lock = threading.RLock()


@dataclasses.dataclass(frozen=True, slots=True)
class Attribute:
    """One mapped attribute."""
    name: str
    column: str
    value_type: type | None = None
    store: Any = None
    retrieve: Any = None
    pk: bool = False
    default: Any = None
    default_factory: Any = None

    @property
    def is_enum(self) -> bool:
        return isinstance(self.value_type, type) and issubclass(self.value_type, enum.Enum)

    def default_value(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


@dataclasses.dataclass(frozen=True)
class Metadata:
    """Immutable mapping table of one mapped type."""
    entity_type: type
    table_name: str
    primary_key: str
    key_attribute: Attribute | None
    attributes: tuple[Attribute, ...]
    column_to_attribute: types.MappingProxyType
    attribute_to_column: types.MappingProxyType

    @property
    def value_attributes(self) -> tuple[Attribute, ...]:
        """Attributes written by insert and update, in declaration order.

        Only an explicitly marked key is excluded.
        """
        return tuple(a for a in self.attributes if a is not self.key_attribute)

    def attribute(self, name: str) -> Attribute:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        raise MappingError(f'{self.entity_type.__name__} has no attribute {name}')

    def attribute_for_column(self, column: str) -> Attribute:
        """Resolve a result column, falling back to a same-named attribute.
        """
        name = self.column_to_attribute.get(column, column)
        for attr in self.attributes:
            if attr.name == name:
                return attr
        raise MappingError(f'column {column} does not map to any attribute '
                           f'of {self.entity_type.__name__}')

    def require_key(self) -> Attribute:
        if self.key_attribute is None:
            raise MappingError(f'{self.entity_type.__name__} has no primary key attribute; '
                               f'mark one with primary_key()')
        return self.key_attribute

    def new_instance(self) -> Any:
        """Default-construct an instance without calling ``__init__``.
        """
        obj = self.entity_type.__new__(self.entity_type)
        for attr in self.attributes:
            setattr(obj, attr.name, attr.default_value())
        return obj


def _unwrap_optional(tp: Any) -> type | None:
    if typing.get_origin(tp) in {typing.Union, types.UnionType}:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) != 1:
            return None
        tp = args[0]
    if typing.get_origin(tp) is not None:
        tp = typing.get_origin(tp)
    return tp if isinstance(tp, type) else None


def _resolve_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except Exception as exc:
        raise MappingError(f'cannot resolve type hints of {cls.__name__}: {exc}') from exc


def _check_converter(cls: type, field_name: str, converter: Any, method: str) -> None:
    if converter is not None and not callable(getattr(converter, method, None)):
        raise MappingError(f'{cls.__name__}.{field_name}: {converter!r} has no {method}() method')


def build_metadata(cls: type) -> Metadata:
    """Reflect a mapped dataclass into its ``Metadata``.
    """
    if not dataclasses.is_dataclass(cls) or not isinstance(cls, type):
        raise MappingError(f'{cls!r} is not a dataclass type')
    if cls.__dataclass_params__.frozen:
        raise MappingError(f'{cls.__name__} is frozen; mapped types must be mutable')

    table_name = cls.__dict__.get(TABLE_ATTR) or getattr(cls, TABLE_ATTR, None) or cls.__name__
    hints = _resolve_hints(cls)

    attributes = []
    key_attribute = None
    col_to_attr: dict[str, str] = {}
    attr_to_col: dict[str, str] = {}

    for field in dataclasses.fields(cls):
        info = field.metadata.get(COLUMN_KEY) or ColumnInfo()
        column_name = info.name or field.name

        if column_name in col_to_attr:
            raise MappingError(f'{cls.__name__}: column {column_name} is mapped by both '
                               f'{col_to_attr[column_name]} and {field.name}')
        _check_converter(cls, field.name, info.store, 'store')
        _check_converter(cls, field.name, info.retrieve, 'retrieve')

        attr = Attribute(
            name=field.name,
            column=column_name,
            value_type=_unwrap_optional(hints.get(field.name, field.type)),
            store=info.store,
            retrieve=info.retrieve,
            pk=info.pk,
            default=None if field.default is dataclasses.MISSING else field.default,
            default_factory=None if field.default_factory is dataclasses.MISSING else field.default_factory,
        )

        if info.pk:
            if key_attribute is not None:
                raise MappingError(f'{cls.__name__}: primary key marked on both '
                                   f'{key_attribute.name} and {field.name}')
            key_attribute = attr

        attributes.append(attr)
        col_to_attr[column_name] = field.name
        attr_to_col[field.name] = column_name

    if key_attribute is not None:
        primary_key = key_attribute.column
    else:
        primary_key = f'{table_name}_id'
        logger.warning(f'{cls.__name__} has no primary key marker; using {primary_key} '
                       f'in SQL text only')

    md = Metadata(
        entity_type=cls,
        table_name=table_name,
        primary_key=primary_key,
        key_attribute=key_attribute,
        attributes=tuple(attributes),
        column_to_attribute=types.MappingProxyType(col_to_attr),
        attribute_to_column=types.MappingProxyType(attr_to_col),
    )
    logger.debug(f'Built metadata for {cls.__name__}: table={table_name} key={primary_key} '
                 f'columns={list(attr_to_col.values())}')
    return md


def metadata_for(cls: type) -> Metadata:
    """Get the cached metadata of a mapped type, building it on first use.
    """
    md = _registry.get(cls)
    if md is not None:
        return md

    with _registry_lock:
        md = _registry.get(cls)
        if md is None:
            md = build_metadata(cls)
            _registry[cls] = md
        return md


def clear_registry() -> None:
    """Forget all cached metadata.
    """
    with _registry_lock:
        _registry.clear()
