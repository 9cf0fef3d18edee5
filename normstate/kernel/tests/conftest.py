"""
Kernel test configuration.

Shared fixtures: a "todos" operation factory and a collecting sink so tests
can assert on diagnostics without touching logging.
"""

import pytest

from normstate.kernel.diagnostics import CollectingSink
from normstate.kernel.operations import make_operations


@pytest.fixture
def todos():
    return make_operations("todos")


@pytest.fixture
def sink():
    return CollectingSink()
