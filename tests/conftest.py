import pathlib
import site

import pytest
from bulkmapper.connection import dispose_all_engines, reset_configuration
from bulkmapper.metadata import clear_registry

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_mapper_state():
    """Reset metadata and global configuration around each test for isolation."""
    clear_registry()
    reset_configuration()
    yield
    reset_configuration()
    clear_registry()
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.entities',
    'tests.fixtures.sqlite',
]
