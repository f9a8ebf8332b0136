"""
Statement execution on a DB-API cursor.

Wraps the driver cursor to translate ``?`` markers for the driver's
paramstyle, log statements and timings, and flush batched rows in chunks.
"""
import logging
import time
from collections.abc import Iterable, Sequence
from functools import wraps
from typing import Any

from bulkmapper.sql import to_paramstyle
from more_itertools import chunked

__all__ = [
    'Cursor',
    'dumpsql',
    'dumpsql_many',
]

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            logger.debug(f'Query time: {time.time() - start:.4f}s')
    return wrapper


def dumpsql_many(func):
    """Decorator for logging batched executions."""
    @wraps(func)
    def wrapper(self, operation: str, seq_of_parameters: Iterable, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\n(batched)')
        try:
            return func(self, operation, seq_of_parameters, *args, **kwargs)
        except Exception:
            logger.error(f'Error with executemany:\nSQL:\n{operation}')
            raise
        finally:
            logger.debug(f'Executemany time: {time.time() - start:.4f}s')
    return wrapper


class Cursor:
    """DB-API cursor wrapper bound to one driver paramstyle."""

    def __init__(self, cursor: Any, paramstyle: str = 'qmark') -> None:
        self.dbapi_cursor = cursor
        self.paramstyle = paramstyle

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    @property
    def description(self) -> Sequence | None:
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        return self.dbapi_cursor.rowcount

    def close(self) -> None:
        self.dbapi_cursor.close()

    @dumpsql
    def execute(self, operation: str, args: Sequence[Any] = ()) -> int:
        """Execute one statement and return the affected row count.

        Without arguments the statement is sent as written.
        """
        if args:
            operation = to_paramstyle(operation, self.paramstyle)
            self.dbapi_cursor.execute(operation, tuple(args))
        else:
            self.dbapi_cursor.execute(operation)
        return self.dbapi_cursor.rowcount

    @dumpsql_many
    def executemany(self, operation: str, seq_of_parameters: Iterable[Sequence[Any]],
                    batch_size: int = 500) -> int:
        """Execute against every parameter row, flushing every ``batch_size`` rows.

        Rows are drawn lazily, so a row that fails to bind aborts the call
        before any later chunk is sent.
        """
        operation = to_paramstyle(operation, self.paramstyle)

        total_rowcount = 0
        flushed = 0
        for chunk in chunked(seq_of_parameters, batch_size):
            self.dbapi_cursor.executemany(operation, chunk)
            flushed += 1
            total_rowcount += max(self.dbapi_cursor.rowcount, 0)
            logger.debug(f'Flushed batch of {len(chunk)} rows')

        if not flushed:
            logger.warning('executemany called with no parameter rows')
        return total_rowcount
