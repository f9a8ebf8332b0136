import sqlite3

import pytest
from bulkmapper.exceptions import ConverterError, MapperError, MappingError
from bulkmapper.exceptions import ResourceCloseError, StorageError, UsageError


def _raised(name, cause):
    try:
        raise MapperError(name) from cause
    except MapperError as exc:
        return exc


@pytest.mark.parametrize(('cause', 'kind'), [
    (UsageError('bad argument'), 'usage'),
    (MappingError('no such column'), 'mapping'),
    (ConverterError('store failed'), 'converter'),
    (ResourceCloseError("can't close Cursor"), 'resource'),
    (sqlite3.OperationalError('no such table'), 'storage'),
    (RuntimeError('boom'), 'unknown'),
])
def test_kind_follows_cause(cause, kind):
    exc = _raised('select', cause)

    assert exc.operation == 'select'
    assert exc.kind == kind


def test_kind_of_specific_errors():
    assert UsageError('x').kind == 'usage'
    assert MappingError('x').kind == 'mapping'
    assert ConverterError('x').kind == 'converter'
    assert ResourceCloseError("can't close Connection").kind == 'resource'
    assert MapperError('insert - batch').kind == 'unknown'


def test_str_includes_operation_and_cause():
    exc = _raised('delete - single', UsageError('primary key must not be None'))

    assert str(exc) == 'delete - single: usage: primary key must not be None'


def test_str_prefers_own_message():
    try:
        raise ConverterError('store converter failed for tags') from TypeError('bad')
    except ConverterError as exc:
        assert str(exc) == 'converter: store converter failed for tags'


def test_usage_error_is_value_error():
    assert issubclass(UsageError, ValueError)
    assert issubclass(UsageError, MapperError)


def test_storage_error_tuple():
    assert isinstance(sqlite3.IntegrityError('dup'), StorageError)
