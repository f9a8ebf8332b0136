"""
Connection providers and process-wide configuration.

This module provides:
1. The connection provider protocol: ``acquire()`` returns a fresh DB-API
   connection, ``paramstyle`` and ``dialect`` describe the driver
2. ``EngineConnectionProvider`` over a SQLAlchemy engine, created through a
   thread-safe engine registry
3. ``CallableConnectionProvider`` over any zero-argument connection factory
4. The global configuration surface: connection provider and batch size

Configuration is meant to be set once during start-up, before the mapper is
used from several threads; it is not synchronised.
"""
import atexit
import datetime
import logging
import sqlite3
import threading
from collections.abc import Callable
from dataclasses import fields
from typing import Any, Protocol, runtime_checkable

import dateutil.parser
import sqlalchemy as sa
from bulkmapper.exceptions import UsageError
from bulkmapper.options import DEFAULT_BATCH_SIZE, MapperOptions
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import load_options

__all__ = [
    'ConnectionProvider',
    'EngineConnectionProvider',
    'CallableConnectionProvider',
    'configure',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
    'set_connection_provider',
    'get_connection_provider',
    'set_batch_size',
    'get_batch_size',
    'reset_configuration',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()

_provider: 'ConnectionProvider | None' = None
_batch_size: int = DEFAULT_BATCH_SIZE


@runtime_checkable
class ConnectionProvider(Protocol):
    paramstyle: str
    dialect: str | None

    def acquire(self) -> Any: ...


class EngineConnectionProvider:
    """Hands out raw DB-API connections from a SQLAlchemy engine.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.dialect = engine.dialect.name
        self.paramstyle = getattr(engine.dialect.dbapi, 'paramstyle', 'qmark')

    def acquire(self) -> Any:
        return self.engine.raw_connection()

    def __repr__(self) -> str:
        return f'EngineConnectionProvider({self.engine.url!r})'


class CallableConnectionProvider:
    """Hands out connections from a plain factory such as ``lambda: sqlite3.connect(path)``.
    """

    def __init__(self, factory: Callable[[], Any], paramstyle: str = 'qmark',
                 dialect: str | None = None) -> None:
        self.factory = factory
        self.paramstyle = paramstyle
        self.dialect = dialect

    def acquire(self) -> Any:
        return self.factory()

    def __repr__(self) -> str:
        return f'CallableConnectionProvider({self.factory!r}, paramstyle={self.paramstyle!r})'


def set_connection_provider(provider: ConnectionProvider | Callable[[], Any] | None) -> None:
    """Install the process-wide connection provider.

    A plain callable is wrapped in a ``CallableConnectionProvider``.
    """
    global _provider
    if provider is not None and not isinstance(provider, ConnectionProvider):
        if not callable(provider):
            raise UsageError(f'{provider!r} is neither a connection provider nor callable')
        provider = CallableConnectionProvider(provider)
    _provider = provider
    logger.debug(f'Connection provider set to {provider!r}')


def get_connection_provider() -> ConnectionProvider:
    if _provider is None:
        raise UsageError('no connection provider configured; call '
                         'set_connection_provider() or configure() first')
    return _provider


def set_batch_size(batch_size: int) -> None:
    """Set the process-wide number of rows per batched execution.
    """
    global _batch_size
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ValueError(f'batch_size must be a positive integer, got {batch_size!r}')
    _batch_size = batch_size


def get_batch_size() -> int:
    return _batch_size


def reset_configuration() -> None:
    """Drop the provider and restore the default batch size.
    """
    global _provider, _batch_size
    _provider = None
    _batch_size = DEFAULT_BATCH_SIZE


def create_url_from_options(options: MapperOptions,
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert MapperOptions to SQLAlchemy URL.
    """
    if options.drivername == 'sqlite':
        return url_creator(
            drivername='sqlite',
            database=options.database
        )

    elif options.drivername == 'postgresql':
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)

        return url_creator(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    raise ValueError(f'Unsupported database type: {options.drivername}')


def _adapt_date(val: datetime.date) -> str:
    return val.isoformat()


def _adapt_datetime(val: datetime.datetime) -> str:
    return val.isoformat(' ')


def _convert_date(val: bytes) -> datetime.date:
    return dateutil.parser.isoparse(val.decode()).date()


def _convert_datetime(val: bytes) -> datetime.datetime:
    return dateutil.parser.isoparse(val.decode())


def register_sqlite_adapters() -> None:
    """Register ISO-8601 adapters and converters for temporal values.
    """
    sqlite3.register_adapter(datetime.date, _adapt_date)
    sqlite3.register_adapter(datetime.datetime, _adapt_datetime)
    sqlite3.register_converter('date', _convert_date)
    sqlite3.register_converter('datetime', _convert_datetime)
    sqlite3.register_converter('timestamp', _convert_datetime)


def get_engine_for_options(options: MapperOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = f'{options.drivername}_{options.hostname}_{options.port}_{options.database}_' \
          f'{options.username}_{options.use_pool}_{options.pool_size}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)

        engine_kwargs: dict[str, Any] = {'echo': False}

        if options.drivername == 'sqlite':
            register_sqlite_adapters()
            engine_kwargs['connect_args'] = {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }

        if not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_size
            engine_kwargs['pool_recycle'] = options.pool_recycle
            engine_kwargs['pool_timeout'] = options.pool_timeout
            engine_kwargs['pool_pre_ping'] = True
            engine_kwargs['pool_reset_on_return'] = 'rollback'

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All mapper engines disposed')


atexit.register(dispose_all_engines)


@load_options(cls=MapperOptions)
def configure(options: MapperOptions | dict[str, Any] | str,
              config: Any | None = None, **kw: Any) -> EngineConnectionProvider:
    """Configure the mapper from options.

    Args:
        options: Can be:
                - MapperOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        The installed EngineConnectionProvider
    """
    if isinstance(options, MapperOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=MapperOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)
    provider = EngineConnectionProvider(engine)

    set_connection_provider(provider)
    set_batch_size(options.batch_size)
    logger.debug(f'Configured {options.drivername} mapper with batch size {options.batch_size}')
    return provider
