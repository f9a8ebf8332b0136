"""
Result mapping: cursor rows to mapped instances, and generated keys.
"""
import logging
from typing import Any

from bulkmapper.converters import convert_from_retrieve
from bulkmapper.exceptions import MappingError
from bulkmapper.metadata import Attribute, Metadata

__all__ = [
    'column_labels',
    'map_row',
    'map_rows',
    'generated_keys',
    'pick_generated_key',
]

logger = logging.getLogger(__name__)


def column_labels(cursor: Any) -> list[str]:
    """Column labels of the current result set.
    """
    if cursor.description is None:
        return []
    return [d[0] for d in cursor.description]


def _retrieve(attribute: Attribute, value: Any) -> Any:
    if attribute.is_enum:
        if value is None:
            return None
        try:
            return attribute.value_type[value]
        except KeyError as exc:
            raise MappingError(f'{value!r} is not a member of '
                               f'{attribute.value_type.__name__}') from exc
    return convert_from_retrieve(attribute, value)


def map_row(md: Metadata, attributes: list[Attribute], row: Any) -> Any:
    obj = md.new_instance()
    for attribute, value in zip(attributes, row):
        setattr(obj, attribute.name, _retrieve(attribute, value))
    return obj


def map_rows(cursor: Any, md: Metadata) -> list[Any]:
    """Build one instance per remaining row of the cursor.

    Every column must resolve to an attribute; enum attributes are parsed
    from their stored name, all others go through the retrieve converter.
    """
    attributes = [md.attribute_for_column(label) for label in column_labels(cursor)]
    result = [map_row(md, attributes, row) for row in cursor.fetchall()]
    logger.debug(f'Mapped {len(result)} {md.entity_type.__name__} rows')
    return result


def generated_keys(cursor: Any, key_column: str) -> list[tuple[str, Any]]:
    """Generated key columns of the last insert as (column, value) pairs.

    Reads a returned row when the statement produced one, else the cursor's
    ``lastrowid``. An empty list means the store reported no key.
    """
    if cursor.description is not None:
        row = cursor.fetchone()
        if row is None:
            return []
        return list(zip(column_labels(cursor), row))
    lastrowid = getattr(cursor, 'lastrowid', None)
    if lastrowid is None:
        return []
    return [(key_column, lastrowid)]


def pick_generated_key(keys: list[tuple[str, Any]], key_column: str) -> tuple[bool, Any]:
    """Select the key value from the generated key columns.

    Returns (found, value). Zero columns means no key; one column is used
    directly; more columns are looked up by the key column name.
    """
    if not keys:
        return False, None
    if len(keys) == 1:
        return True, keys[0][1]
    for column, value in keys:
        if column == key_column:
            return True, value
    for column, value in keys:
        if column.lower() == key_column.lower():
            return True, value
    raise MappingError(f'generated keys {[c for c, _ in keys]} do not include {key_column}')
