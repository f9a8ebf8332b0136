"""
SQL assembly for mapped types.

Two parts:

- canonical statements generated straight from ``Metadata`` (select by key,
  insert, update, delete, delete by key list);
- ``expand_placeholders()`` for hand-written templates, which unfolds list
  arguments into one ``?`` per element so ``WHERE k IN (?)`` works with a
  single list argument.

All generated SQL uses ``?`` markers; ``to_paramstyle()`` translates them for
drivers with ``format``/``pyformat`` parameter styles.
"""
import re
from collections.abc import Sequence
from typing import Any

from bulkmapper.exceptions import UsageError
from bulkmapper.metadata import Metadata

from libb import issequence

__all__ = [
    'select_all_sql',
    'select_by_key_sql',
    'insert_sql',
    'update_sql',
    'delete_sql',
    'delete_in_sql',
    'make_placeholders',
    'expand_placeholders',
    'is_list_argument',
    'to_paramstyle',
]

# string literals, escaped markers, bare markers, percent signs
_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<escaped>\\\?)
    |(?P<qmark>\?)
    |(?P<percent>%)
""", re.VERBOSE)

_OPEN_BEFORE = re.compile(r'\(\s*$')
_CLOSE_AFTER = re.compile(r'^\s*\)')


def make_placeholders(count: int) -> str:
    """Comma-separated ``?`` markers.

    >>> make_placeholders(3)
    '?,?,?'
    """
    return ','.join(['?'] * count)


def select_all_sql(md: Metadata) -> str:
    return f'SELECT * FROM {md.table_name}'


def select_by_key_sql(md: Metadata) -> str:
    return f'SELECT * FROM {md.table_name} WHERE {md.primary_key}=?'


def insert_sql(md: Metadata, include_key: bool = False) -> str:
    """INSERT over every mapped column in declaration order.

    The key column is left out unless ``include_key`` is set, so the store can
    generate it.
    """
    columns = [a.column for a in md.attributes
               if include_key or a is not md.key_attribute]
    return (f"INSERT INTO {md.table_name} ({','.join(columns)}) "
            f'VALUES ({make_placeholders(len(columns))})')


def update_sql(md: Metadata) -> str:
    """UPDATE of all non-key columns, matched by key.
    """
    datacols = ','.join(f'{a.column}=?' for a in md.value_attributes)
    return f'UPDATE {md.table_name} SET {datacols} WHERE {md.primary_key}=?'


def delete_sql(md: Metadata) -> str:
    return f'DELETE FROM {md.table_name} WHERE {md.primary_key}=?'


def delete_in_sql(md: Metadata, count: int) -> str:
    return f'DELETE FROM {md.table_name} WHERE {md.primary_key} IN ({make_placeholders(count)})'


def is_list_argument(arg: Any) -> bool:
    """Arguments that unfold into a group of markers.
    """
    return issequence(arg) and not isinstance(arg, str | bytes | bytearray)


def _find_marker(template: str, start: int) -> int:
    """Position of the next unescaped ``?`` at or after start, -1 if none.
    """
    while True:
        pos = template.find('?', start)
        if pos < 0:
            return -1
        if pos > 0 and template[pos - 1] == '\\':
            start = pos + 1
            continue
        return pos


def expand_placeholders(template: str, args: Sequence[Any]) -> tuple[str, tuple]:
    """Match one unescaped ``?`` per argument and unfold list arguments.

    A ``\\?`` stays as it is in the output and does not take an argument.
    A list or tuple argument turns its marker into a group of markers, one per
    element, and its elements are bound in its place.

    >>> expand_placeholders('SELECT * FROM t WHERE k IN (?) AND s=?', ([1, 2, 3], 'x'))
    ('SELECT * FROM t WHERE k IN (?,?,?) AND s=?', (1, 2, 3, 'x'))
    >>> expand_placeholders('SELECT * FROM t WHERE k IN ? AND q = \\\\?', ((1, 2),))
    ('SELECT * FROM t WHERE k IN (?,?) AND q = \\\\?', (1, 2))
    """
    if not args:
        return template, ()

    parts = []
    flat: list[Any] = []
    pos = 0
    for arg in args:
        marker = _find_marker(template, pos)
        if marker < 0:
            raise UsageError(f'supplied query and arguments do not match: {len(args)} '
                             f'arguments for template {template!r}')
        parts.append(template[pos:marker])
        pos = marker + 1

        if not is_list_argument(arg):
            parts.append('?')
            flat.append(arg)
            continue

        group = make_placeholders(len(arg)) if len(arg) else 'NULL'
        in_parens = bool(_OPEN_BEFORE.search(template[:marker])
                         and _CLOSE_AFTER.match(template[pos:]))
        parts.append(group if in_parens else f'({group})')
        flat.extend(arg)

    parts.append(template[pos:])
    return ''.join(parts), tuple(flat)


def to_paramstyle(sql: str, paramstyle: str = 'qmark') -> str:
    """Translate ``?`` markers for the driver's parameter style.

    Only ``qmark`` and the ``format``/``pyformat`` styles are supported; for
    the latter, bare ``?`` outside string literals becomes ``%s`` and literal
    percent signs are doubled.

    >>> to_paramstyle("SELECT * FROM t WHERE a=? AND b LIKE 'x%'", 'format')
    "SELECT * FROM t WHERE a=%s AND b LIKE 'x%%'"
    """
    if paramstyle == 'qmark':
        return sql
    if paramstyle not in {'format', 'pyformat'}:
        raise UsageError(f'unsupported paramstyle: {paramstyle}')

    def replace(match: re.Match) -> str:
        if match.group('string'):
            return match.group('string').replace('%', '%%')
        if match.group('escaped'):
            return match.group('escaped')
        if match.group('qmark'):
            return '%s'
        return '%%'

    return _TOKENIZE.sub(replace, sql)
