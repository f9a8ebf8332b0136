"""
Mapped types shared by the mapper tests.

Usage:
    from tests.fixtures.entities import Item, Widget

    def test_something(item_type):
        assert item_type is Item
"""
import datetime
import enum
from dataclasses import dataclass, field

import pytest
from bulkmapper import Entity, column, primary_key, table


class Color(enum.Enum):
    RED = 1
    GREEN = 2
    BLUE = 3


class TagsConverter:
    """Stores a list of tags as one comma separated string."""

    def store(self, connection, value):
        if value is None:
            return None
        return ','.join(value)

    def retrieve(self, value):
        if value is None:
            return []
        return value.split(',') if value else []


@table('item')
@dataclass
class Item(Entity):
    id: int | None = primary_key()
    name: str | None = None
    active: bool | None = None


@table('owner')
@dataclass
class Owner(Entity):
    id: int | None = primary_key('owner_id')
    name: str | None = None


@table('widget')
@dataclass
class Widget(Entity):
    id: int | None = primary_key('widget_id')
    label: str | None = column('label_text')
    color: Color | None = None
    tags: list | None = column(store=TagsConverter, retrieve=TagsConverter,
                               default_factory=list)
    made: datetime.date | None = None
    owner: Owner | None = column('owner_id')


@dataclass
class Note:
    body: str | None = None
    score: int = 0
    labels: list = field(default_factory=list)


@pytest.fixture
def item_type():
    return Item


@pytest.fixture
def widget_type():
    return Widget
