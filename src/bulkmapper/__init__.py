"""
Flat object-relational mapper for bulk/batch database access.

Dataclasses are mapped to tables with declarative markers; ``Dao`` runs
select, insert, update and delete (and their batch forms) with SQL built from
the mapping, one connection per call:

    bulkmapper.configure({'drivername': 'sqlite', 'database': 'app.db'})

    @table('item')
    @dataclass
    class Item(Entity):
        id: int | None = primary_key()
        name: str | None = None
        active: bool | None = None

    dao = Dao(Item)
    key = dao.insert(Item(name='a', active=True))
    item = dao.get_by_pk(key)
"""
__version__ = '0.1.0'

from bulkmapper.connection import CallableConnectionProvider, ConnectionProvider
from bulkmapper.connection import EngineConnectionProvider, configure
from bulkmapper.connection import dispose_all_engines, get_batch_size
from bulkmapper.connection import get_connection_provider, reset_configuration
from bulkmapper.connection import set_batch_size, set_connection_provider
from bulkmapper.converters import NullConverter, RetrieveConverter
from bulkmapper.converters import StoreConverter
from bulkmapper.dao import Dao
from bulkmapper.exceptions import ConverterError, MapperError, MappingError
from bulkmapper.exceptions import ResourceCloseError, StorageError, UsageError
from bulkmapper.mapping import Entity, column, primary_key, table
from bulkmapper.metadata import Metadata, clear_registry, metadata_for
from bulkmapper.options import MapperOptions
from bulkmapper.sql import expand_placeholders

__all__ = [
    'configure',
    'MapperOptions',
    'ConnectionProvider',
    'EngineConnectionProvider',
    'CallableConnectionProvider',
    'set_connection_provider',
    'get_connection_provider',
    'set_batch_size',
    'get_batch_size',
    'reset_configuration',
    'dispose_all_engines',
    'Dao',
    'Entity',
    'table',
    'column',
    'primary_key',
    'Metadata',
    'metadata_for',
    'clear_registry',
    'StoreConverter',
    'RetrieveConverter',
    'NullConverter',
    'expand_placeholders',
    'MapperError',
    'UsageError',
    'MappingError',
    'ConverterError',
    'ResourceCloseError',
    'StorageError',
]
