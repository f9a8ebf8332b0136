"""
Mapper-specific exception classes.
"""
import sqlite3

import psycopg
import sqlalchemy as sa


class MapperError(Exception):
    """Base class for all mapper errors.

    Raised at every operation boundary with a short operation tag
    (e.g. ``'insert - batch'``) and the original failure as ``__cause__``.
    """

    def __init__(self, operation: str = '', *args) -> None:
        super().__init__(operation, *args)
        self.operation = operation

    def __str__(self) -> str:
        if len(self.args) > 1:
            return f'{self.operation}: {self.args[1]}'
        if self.__cause__ is not None:
            return f'{self.operation}: {self.__cause__}'
        return self.operation

    @property
    def kind(self) -> str:
        """Classify the failure by its own class, then by its cause.
        """
        for err in (self, self.__cause__):
            if isinstance(err, ResourceCloseError):
                return 'resource'
            if isinstance(err, UsageError):
                return 'usage'
            if isinstance(err, MappingError):
                return 'mapping'
            if isinstance(err, ConverterError):
                return 'converter'
            if isinstance(err, StorageError):
                return 'storage'
        return 'unknown'


class UsageError(MapperError, ValueError):
    """Caller passed arguments that cannot work.
    """

    def __init__(self, message: str) -> None:
        super().__init__('usage', message)


class MappingError(MapperError):
    """Metadata cannot be built or a column cannot be resolved.
    """

    def __init__(self, message: str) -> None:
        super().__init__('mapping', message)


class ConverterError(MapperError):
    """A store or retrieve converter failed.
    """

    def __init__(self, message: str) -> None:
        super().__init__('converter', message)


class ResourceCloseError(MapperError):
    """Closing a cursor or connection failed.
    """


StorageError = (
    sqlite3.Error,
    psycopg.Error,
    sa.exc.DBAPIError,
    )
