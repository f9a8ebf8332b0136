"""
DAO statement assembly and parameter layout, checked against mock connections.
"""
from unittest.mock import MagicMock

import pytest
from bulkmapper import CallableConnectionProvider, Dao, MapperError

from tests.fixtures.entities import Color, Item, Note, Owner, Widget


@pytest.fixture
def mock_connection():
    cn = MagicMock()
    cursor = MagicMock()
    cursor.description = None
    cursor.rowcount = 1
    cursor.lastrowid = None
    cn.cursor.return_value = cursor
    return cn, cursor


def _provider(cn, paramstyle='qmark', dialect=None):
    return CallableConnectionProvider(lambda: cn, paramstyle=paramstyle, dialect=dialect)


class TestInsert:

    def test_postgres_returning(self, mock_connection):
        cn, cursor = mock_connection
        cursor.description = [('id', None, None, None, None, None, None)]
        cursor.fetchone.return_value = (42,)
        dao = Dao(Item, provider=_provider(cn, 'format', 'postgresql'))
        item = Item(name='a', active=True)

        assert dao.insert(item) == 42

        cursor.execute.assert_called_once_with(
            'INSERT INTO item (name,active) VALUES (%s,%s) RETURNING id', ('a', True))
        assert item.id == 42
        cn.commit.assert_called_once()
        cn.close.assert_called_once()

    def test_supplied_key_is_inserted(self, mock_connection):
        cn, cursor = mock_connection
        dao = Dao(Item, provider=_provider(cn, 'format', 'postgresql'))

        assert dao.insert(Item(id=5, name='a')) == 5

        cursor.execute.assert_called_once_with(
            'INSERT INTO item (id,name,active) VALUES (%s,%s,%s)', (5, 'a', None))

    def test_lastrowid(self, mock_connection):
        cn, cursor = mock_connection
        cursor.lastrowid = 7
        dao = Dao(Owner, provider=_provider(cn))
        owner = Owner(name='o')

        assert dao.insert(owner) == 7
        assert owner.id == 7
        sql = cursor.execute.call_args.args[0]
        assert sql == 'INSERT INTO owner (name) VALUES (?)'

    def test_no_key_attribute_returns_raw_key(self, mock_connection):
        cn, cursor = mock_connection
        cursor.lastrowid = 3
        dao = Dao(Note, provider=_provider(cn, 'format', 'postgresql'))

        assert dao.insert(Note(body='b', labels='x')) == 3

        sql = cursor.execute.call_args.args[0]
        assert 'RETURNING' not in sql

    def test_several_generated_columns(self, mock_connection):
        cn, cursor = mock_connection
        cursor.description = [('version', None, None, None, None, None, None),
                              ('owner_id', None, None, None, None, None, None)]
        cursor.fetchone.return_value = (1, 12)
        dao = Dao(Owner, provider=_provider(cn, 'format', 'postgresql'))

        assert dao.insert(Owner(name='o')) == 12

    def test_widget_parameters(self, mock_connection):
        cn, cursor = mock_connection
        cursor.lastrowid = 1
        dao = Dao(Widget, provider=_provider(cn))

        dao.insert(Widget(label='k', color=Color.RED, tags=['a', 'b'], owner=Owner(id=4)))

        assert cursor.execute.call_args.args[1] == ('k', 'RED', 'a,b', None, 4)


class TestWrites:

    def test_update_parameters(self, mock_connection):
        cn, cursor = mock_connection
        dao = Dao(Item, provider=_provider(cn))

        dao.update(Item(id=3, name='n', active=False))

        cursor.execute.assert_called_once_with(
            'UPDATE item SET name=?,active=? WHERE id=?', ('n', False, 3))

    def test_update_many_chunks(self, mock_connection):
        cn, cursor = mock_connection
        dao = Dao(Item, provider=_provider(cn), batch_size=2)

        dao.update_many([Item(id=i, name=str(i)) for i in range(3)])

        chunks = [c.args[1] for c in cursor.executemany.call_args_list]
        assert chunks == [[['0', None, 0], ['1', None, 1]], [['2', None, 2]]]
        cn.commit.assert_called_once()

    def test_delete_single(self, mock_connection):
        cn, cursor = mock_connection
        dao = Dao(Item, provider=_provider(cn))

        dao.delete(Item(id=8))

        cursor.execute.assert_called_once_with('DELETE FROM item WHERE id=?', (8,))

    def test_delete_requires_key_attribute(self, mock_connection):
        cn, cursor = mock_connection
        dao = Dao(Note, provider=_provider(cn))

        with pytest.raises(MapperError) as exc_info:
            dao.delete(Note(body='x'))

        assert exc_info.value.operation == 'delete - single'
        assert exc_info.value.kind == 'mapping'
        cn.rollback.assert_called_once()

    def test_delete_by_pk_without_key_attribute(self, mock_connection):
        cn, cursor = mock_connection
        dao = Dao(Note, provider=_provider(cn))

        dao.delete_by_pk('anything')

        cursor.execute.assert_called_once_with('DELETE FROM Note WHERE Note_id=?', ('anything',))


class TestConfiguration:

    def test_batch_size_falls_back_to_global(self):
        from bulkmapper import set_batch_size

        dao = Dao(Item)
        set_batch_size(17)

        assert dao.batch_size == 17
        assert Dao(Item, batch_size=4).batch_size == 4

    @pytest.mark.parametrize('value', [0, -3, 'x', True])
    def test_invalid_batch_size(self, value):
        with pytest.raises(ValueError):
            Dao(Item, batch_size=value)

    def test_metadata_shared_between_daos(self):
        assert Dao(Item).metadata is Dao(Item).metadata
