"""
Declarative mapping markers.

Mapped types are plain mutable dataclasses. Markers only attach data;
nothing is resolved until the metadata registry reflects the type.

Examples
    @table('item')
    @dataclass
    class Item(Entity):
        id: int | None = primary_key()
        name: str | None = column('item_name')
        tags: list | None = column(store=TagsConverter, retrieve=TagsConverter)
"""
import dataclasses
from typing import Any

__all__ = [
    'TABLE_ATTR',
    'COLUMN_KEY',
    'ColumnInfo',
    'Entity',
    'table',
    'column',
    'primary_key',
]

TABLE_ATTR = '__table_name__'
COLUMN_KEY = 'bulkmapper.column'


@dataclasses.dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Attribute-level marker payload stored in dataclass field metadata."""
    name: str | None = None
    store: Any = None
    retrieve: Any = None
    pk: bool = False


def table(name: str):
    """Class decorator naming the table a mapped type is stored in.
    """
    def decorator(cls):
        setattr(cls, TABLE_ATTR, name)
        return cls
    return decorator


def column(name: str | None = None, *, store: Any = None, retrieve: Any = None,
           pk: bool = False, default: Any = None,
           default_factory: Any = dataclasses.MISSING, **kw: Any) -> Any:
    """Declare a mapped attribute.

    Returns a dataclass field carrying the column name, the optional store and
    retrieve converters and the primary key flag. Attributes default to None so
    the result mapper can default-construct instances.
    """
    info = ColumnInfo(name=name, store=store, retrieve=retrieve, pk=pk)
    metadata = dict(kw.pop('metadata', None) or {})
    metadata[COLUMN_KEY] = info
    if default_factory is not dataclasses.MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata, **kw)
    return dataclasses.field(default=default, metadata=metadata, **kw)


def primary_key(name: str | None = None, **kw: Any) -> Any:
    """Declare the primary key attribute. At most one per type.
    """
    return column(name, pk=True, **kw)


class Entity:
    """Mixin for mapped types that other entities may reference.

    A referencing attribute binds the referenced entity's identifier.
    """

    def get_id(self) -> Any:
        from bulkmapper.metadata import metadata_for
        md = metadata_for(type(self))
        if md.key_attribute is not None:
            return getattr(self, md.key_attribute.name)
        name = md.column_to_attribute.get(md.primary_key)
        return getattr(self, name) if name else None
