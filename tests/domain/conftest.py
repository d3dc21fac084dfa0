import pytest

from builders import NOW


@pytest.fixture
def now():
    return NOW
