"""
Bulk-oriented data access for one mapped type.

``Dao`` assembles SQL from the type's metadata, binds values through the
converter pipeline and runs every call on its own connection. Write
operations over lists are sent in chunks of the batch size.

Examples
    class ItemDao(Dao[Item]):
        def active(self):
            return self.select('SELECT * FROM item WHERE active=?', True)

    dao = ItemDao()
    key = dao.insert(Item(name='a', active=True))
    dao.insert_many(items)
    dao.delete_many(dao.select('SELECT * FROM item WHERE id IN (?)', [1, 2, 3]))
"""
import logging
import typing
from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager
from typing import Any, Generic, TypeVar

from bulkmapper.binder import bind_attribute, bind_value
from bulkmapper.connection import ConnectionProvider, get_batch_size
from bulkmapper.connection import get_connection_provider
from bulkmapper.converters import convert_from_retrieve
from bulkmapper.cursor import Cursor
from bulkmapper.exceptions import MapperError, UsageError
from bulkmapper.mapper import generated_keys, map_rows, pick_generated_key
from bulkmapper.metadata import Metadata, metadata_for
from bulkmapper.resources import guarded, operation
from bulkmapper.sql import delete_in_sql, delete_sql, expand_placeholders
from bulkmapper.sql import insert_sql, select_all_sql, select_by_key_sql
from bulkmapper.sql import update_sql

__all__ = ['Dao']

logger = logging.getLogger(__name__)

E = TypeVar('E')


class Dao(Generic[E]):
    """Data access object for mapped type ``E``.

    The type comes from the ``entity_type`` argument or from the generic base
    of a subclass (``class ItemDao(Dao[Item])``). ``provider`` and
    ``batch_size`` override the process-wide configuration for this DAO.
    """

    def __init__(self, entity_type: type[E] | None = None, *,
                 provider: ConnectionProvider | None = None,
                 batch_size: int | None = None) -> None:
        entity_type = entity_type or self._generic_entity_type()
        if entity_type is None:
            raise UsageError(f'{type(self).__name__} needs an entity type')
        if batch_size is not None and (isinstance(batch_size, bool)
                                       or not isinstance(batch_size, int) or batch_size < 1):
            raise ValueError(f'batch_size must be a positive integer, got {batch_size!r}')
        self.entity_type = entity_type
        self.metadata: Metadata = metadata_for(entity_type)
        self.provider = provider
        self._batch_size = batch_size

    @classmethod
    def _generic_entity_type(cls) -> type | None:
        for klass in cls.__mro__:
            for base in getattr(klass, '__orig_bases__', ()):
                if typing.get_origin(base) is Dao:
                    args = typing.get_args(base)
                    if args and isinstance(args[0], type):
                        return args[0]
        return None

    @property
    def batch_size(self) -> int:
        return self._batch_size or get_batch_size()

    def _resolve_provider(self) -> ConnectionProvider:
        return self.provider or get_connection_provider()

    def _operation(self, name: str) -> AbstractContextManager:
        try:
            provider = self._resolve_provider()
        except UsageError as exc:
            raise MapperError(name) from exc
        return operation(name, provider)

    def _cursor(self, connection: Any) -> AbstractContextManager:
        cursor = Cursor(connection.cursor(), self._resolve_provider().paramstyle)
        return guarded(cursor, 'Cursor')

    def _value_row(self, connection: Any, obj: E) -> list[Any]:
        return [bind_attribute(a, connection, obj) for a in self.metadata.value_attributes]

    def _key_parameter(self, connection: Any, obj: E) -> Any:
        return bind_attribute(self.metadata.require_key(), connection, obj)

    def select(self, query: str, *args: Any) -> list[E]:
        """Run a query whose result rows are instances of ``E``.

        ``?`` markers are replaced by ``args`` in order; a list or tuple
        argument unfolds into one marker per element. Use ``\\?`` for a
        literal question mark.
        """
        with self._operation('select') as cn:
            sql, flat = expand_placeholders(query, args)
            params = [bind_value(a) for a in flat]
            with self._cursor(cn) as cursor:
                cursor.execute(sql, params)
                return map_rows(cursor, self.metadata)

    def get_all(self) -> list[E]:
        """All instances in the table."""
        return self.select(select_all_sql(self.metadata))

    def get_by_pk(self, pk: Any) -> E | None:
        """The instance with primary key ``pk``, or None unless exactly one matches."""
        objects = self.select(select_by_key_sql(self.metadata), pk)
        if len(objects) != 1:
            return None
        return objects[0]

    def insert_many(self, objects: Sequence[E]) -> None:
        """Batch insert. The key column is always left to the store.
        """
        if not objects:
            logger.debug('Skipping insert of empty rows')
            return

        md = self.metadata
        with self._operation('insert - batch') as cn:
            sql = insert_sql(md)

            def rows() -> Iterator[list[Any]]:
                for obj in objects:
                    yield self._value_row(cn, obj)

            with self._cursor(cn) as cursor:
                cursor.executemany(sql, rows(), self.batch_size)
        logger.debug(f'Inserted {len(objects)} {md.table_name} rows')

    def insert(self, obj: E) -> Any:
        """Insert one instance and return its primary key.

        When the key attribute is None the key column is omitted, the
        generated key is read back, written into ``obj`` and returned.
        Otherwise the supplied key is inserted and returned.
        """
        md = self.metadata
        key_attr = md.key_attribute
        with self._operation('insert - single') as cn:
            supplied = getattr(obj, key_attr.name) if key_attr is not None else None
            generate = supplied is None

            sql = insert_sql(md, include_key=not generate)
            params = [bind_attribute(a, cn, obj) for a in md.attributes
                      if not generate or a is not key_attr]
            if generate and key_attr is not None and self._resolve_provider().dialect == 'postgresql':
                sql += f' RETURNING {md.primary_key}'

            with self._cursor(cn) as cursor:
                cursor.execute(sql, params)
                if not generate:
                    return supplied
                found, key = pick_generated_key(generated_keys(cursor, md.primary_key),
                                                md.primary_key)

            if not found:
                logger.debug(f'No generated key returned for {md.table_name}')
                return None
            if key_attr is None:
                return key
            key = convert_from_retrieve(key_attr, key)
            setattr(obj, key_attr.name, key)
            return key

    def update_many(self, objects: Sequence[E]) -> None:
        """Batch update of every non-key column, matched by key.
        """
        if not objects:
            logger.debug('Skipping update of empty rows')
            return

        md = self.metadata
        with self._operation('update - batch') as cn:
            md.require_key()
            sql = update_sql(md)

            def rows() -> Iterator[list[Any]]:
                for obj in objects:
                    yield self._value_row(cn, obj) + [self._key_parameter(cn, obj)]

            with self._cursor(cn) as cursor:
                cursor.executemany(sql, rows(), self.batch_size)

    def update(self, obj: E) -> None:
        """Update every non-key column of one instance, matched by key.
        """
        with self._operation('update - single') as cn:
            params = self._value_row(cn, obj) + [self._key_parameter(cn, obj)]
            with self._cursor(cn) as cursor:
                cursor.execute(update_sql(self.metadata), params)

    def delete_many(self, objects: Sequence[E]) -> None:
        """Delete instances by key in one statement sized to the input.
        """
        if not objects:
            logger.debug('Skipping delete of empty rows')
            return

        with self._operation('delete - list') as cn:
            params = [self._key_parameter(cn, obj) for obj in objects]
            with self._cursor(cn) as cursor:
                cursor.execute(delete_in_sql(self.metadata, len(params)), params)

    def delete(self, obj: E | None) -> None:
        """Delete one instance by its key. None is ignored.
        """
        if obj is None:
            return

        with self._operation('delete - single') as cn:
            params = [self._key_parameter(cn, obj)]
            with self._cursor(cn) as cursor:
                cursor.execute(delete_sql(self.metadata), params)

    def delete_by_pk(self, pk: Any) -> None:
        """Delete by raw primary key value.

        The value must be an instance of the declared key type.
        """
        try:
            self._check_key_type(pk)
        except UsageError as exc:
            raise MapperError('delete - single') from exc

        with self._operation('delete - single') as cn:
            with self._cursor(cn) as cursor:
                cursor.execute(delete_sql(self.metadata), [bind_value(pk)])

    def _check_key_type(self, pk: Any) -> None:
        if pk is None:
            raise UsageError('primary key must not be None')
        key_attr = self.metadata.key_attribute
        if key_attr is None or key_attr.value_type is None:
            return
        if not isinstance(pk, key_attr.value_type) or (
                isinstance(pk, bool) and key_attr.value_type is not bool):
            raise UsageError(f'Unexpected primary key type. Expected: {key_attr.value_type.__name__} '
                             f'but passed is: {type(pk).__name__}')

