"""
Resource lifecycle for one mapper operation.

Every public operation acquires exactly one connection, uses it, and releases
it on every exit path:

    with operation('insert - single', provider) as cn:
        with guarded(cn.cursor(), 'Cursor') as cursor:
            ...

A failure while closing is reported on its own when the body succeeded, and
attached to the primary error as a note when the body failed.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from bulkmapper.exceptions import MapperError, ResourceCloseError

__all__ = [
    'guarded',
    'operation',
]

logger = logging.getLogger(__name__)


@contextmanager
def guarded(resource: Any, label: str) -> Iterator[Any]:
    """Close ``resource`` when the block exits.
    """
    try:
        yield resource
    except BaseException as err:
        try:
            resource.close()
        except Exception as exc:
            logger.error(f"can't close {label} after failure: {exc}")
            err.add_note(f"can't close {label}: {exc}")
        raise
    else:
        try:
            resource.close()
        except Exception as exc:
            raise ResourceCloseError(f"can't close {label}") from exc


def _rollback(connection: Any, err: BaseException) -> None:
    try:
        connection.rollback()
        logger.debug('Rolled back failed operation')
    except Exception as exc:
        logger.error(f'Rollback failed: {exc}')
        err.add_note(f'rollback failed: {exc}')


@contextmanager
def operation(name: str, provider: Any) -> Iterator[Any]:
    """Run one mapper operation on a fresh connection.

    Commits when the block succeeds and rolls back when it fails. Any failure
    inside the block is raised as ``MapperError`` tagged with ``name``.
    """
    try:
        connection = provider.acquire()
    except Exception as exc:
        raise MapperError(name) from exc

    with guarded(connection, 'Connection'):
        try:
            yield connection
            connection.commit()
        except Exception as exc:
            _rollback(connection, exc)
            logger.debug(f'Operation {name} failed: {exc}')
            raise MapperError(name) from exc
