"""
Per-attribute value converters.

A store converter turns a domain value into something the driver can bind and
may use the live connection to do it. A retrieve converter turns the value
read from a cursor back into the domain value. Converters are given on the
``column()`` marker either as classes (instantiated on every call) or as
ready instances.
"""
import logging
from typing import Any, Protocol, runtime_checkable

from bulkmapper.exceptions import ConverterError

__all__ = [
    'StoreConverter',
    'RetrieveConverter',
    'NullConverter',
    'convert_to_store',
    'convert_from_retrieve',
]

logger = logging.getLogger(__name__)


@runtime_checkable
class StoreConverter(Protocol):
    def store(self, connection: Any, value: Any) -> Any: ...


@runtime_checkable
class RetrieveConverter(Protocol):
    def retrieve(self, value: Any) -> Any: ...


class NullConverter:
    """Identity converter for both directions."""

    def store(self, connection: Any, value: Any) -> Any:
        return value

    def retrieve(self, value: Any) -> Any:
        return value


def _resolve(converter: Any) -> Any:
    if isinstance(converter, type):
        return converter()
    return converter


def convert_to_store(attribute: Any, connection: Any, value: Any) -> Any:
    """Pass a raw attribute value through the attribute's store converter.
    """
    if attribute.store is None:
        return value
    try:
        return _resolve(attribute.store).store(connection, value)
    except Exception as exc:
        raise ConverterError(f'store converter failed for {attribute.name}: {exc}') from exc


def convert_from_retrieve(attribute: Any, value: Any) -> Any:
    """Pass a database value through the attribute's retrieve converter.
    """
    if attribute.retrieve is None:
        return value
    try:
        return _resolve(attribute.retrieve).retrieve(value)
    except Exception as exc:
        raise ConverterError(f'retrieve converter failed for {attribute.name}: {exc}') from exc
