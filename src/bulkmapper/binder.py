"""
Parameter binding.

Turns a domain value into something a DB-API driver accepts. Dispatch is by
value shape, in this order:

1. referenced entity -> its identifier
2. temporal value -> native date/time
3. enum member -> its name
4. anything else -> as is, after NumPy/Pandas scalar normalisation

Store converters run before the binder, on the raw attribute value, so the
dispatch above applies to whatever the converter returns.
"""
import datetime
import enum
import logging
from typing import Any

import numpy as np
import pandas as pd
from bulkmapper.converters import convert_to_store
from bulkmapper.metadata import Attribute

__all__ = [
    'bind',
    'bind_value',
    'bind_attribute',
    'normalize_scalar',
]

logger = logging.getLogger(__name__)

TEMPORAL_TYPES = (datetime.date, datetime.time, pd.Timestamp, np.datetime64)


def _is_entity_reference(value: Any) -> bool:
    return not isinstance(value, type) and callable(getattr(value, 'get_id', None))


def _bind_temporal(value: Any) -> datetime.date | datetime.time | None:
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()
    return value


def normalize_scalar(value: Any) -> Any:
    """Convert NumPy/Pandas scalars and missing markers to plain Python.

    Plain Python values, float NaN included, pass through unchanged.
    """
    if value is None:
        return None
    if value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, np.floating) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def bind_value(value: Any) -> Any:
    """Convert a domain value into a driver-settable value.
    """
    if value is pd.NaT:
        return None
    if _is_entity_reference(value):
        return bind_value(value.get_id())
    if isinstance(value, TEMPORAL_TYPES):
        return _bind_temporal(value)
    if isinstance(value, enum.Enum):
        return value.name
    return normalize_scalar(value)


def bind(parameters: list, index: int, value: Any) -> None:
    """Bind ``value`` at position ``index`` of a parameter list.
    """
    while len(parameters) <= index:
        parameters.append(None)
    parameters[index] = bind_value(value)


def bind_attribute(attribute: Attribute, connection: Any, instance: Any) -> Any:
    """Bind one attribute of an instance, running its store converter first.
    """
    raw = getattr(instance, attribute.name)
    return bind_value(convert_to_store(attribute, connection, raw))
