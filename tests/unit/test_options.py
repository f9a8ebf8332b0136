import pytest
from bulkmapper.options import DEFAULT_BATCH_SIZE, MapperOptions


def test_init_defaults():
    """Test default initialization"""
    options = MapperOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.batch_size == DEFAULT_BATCH_SIZE == 500

    assert options.use_pool is False
    assert options.pool_size == 5
    assert options.pool_recycle == 300
    assert options.pool_timeout == 30


def test_pooling_options():
    """Test connection pooling options"""
    options = MapperOptions(
        drivername='postgresql',
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        use_pool=True,
        pool_size=10,
        pool_recycle=600,
        pool_timeout=60
    )

    assert options.use_pool is True
    assert options.pool_size == 10
    assert options.pool_recycle == 600
    assert options.pool_timeout == 60


def test_sqlite_options():
    options = MapperOptions(drivername='sqlite', database='mapper.db', batch_size=50)

    assert options.database == 'mapper.db'
    assert options.batch_size == 50


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        MapperOptions(drivername='invalid', database='testdb')

    with pytest.raises(ValueError):
        MapperOptions(drivername='sqlite')

    with pytest.raises(ValueError):
        MapperOptions(drivername='sqlite', database='mapper.db', batch_size=0)

    with pytest.raises(ValueError):
        MapperOptions(drivername='sqlite', database='mapper.db', batch_size='10')

    with pytest.raises(ValueError):
        MapperOptions(drivername='sqlite', database='mapper.db', batch_size=True)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
