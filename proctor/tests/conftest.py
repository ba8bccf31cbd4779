import pytest

from proctor.tests.helpers import FakeCamera


@pytest.fixture
def camera():
    return FakeCamera()
