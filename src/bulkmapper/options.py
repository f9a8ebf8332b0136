from dataclasses import dataclass

from libb import ConfigOptions

__all__ = [
    'MapperOptions',
    'SUPPORTED_DRIVERS',
    'DEFAULT_BATCH_SIZE',
]

SUPPORTED_DRIVERS = ('postgresql', 'sqlite')
DEFAULT_BATCH_SIZE = 500


@dataclass
class MapperOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    Connection pooling options (the core never pools by itself):
    - use_pool: Whether the engine keeps a connection pool (default: False)
    - pool_size: Pooled connections kept open (default: 5)
    - pool_recycle: Seconds before a pooled connection is replaced (default: 300)
    - pool_timeout: Seconds to wait for a pooled connection (default: 30)

    batch_size bounds the rows sent in one batched execution (default: 500).
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    use_pool: bool = False
    pool_size: int = 5
    pool_recycle: int = 300
    pool_timeout: int = 30
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        if self.drivername not in SUPPORTED_DRIVERS:
            raise ValueError(f'drivername must be one of: {list(SUPPORTED_DRIVERS)}')
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int) \
                or self.batch_size < 1:
            raise ValueError(f'batch_size must be a positive integer, got {self.batch_size!r}')
        if self.drivername == 'sqlite' and not self.database:
            raise ValueError('sqlite requires a database path')
