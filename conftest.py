import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from testkit import TestResult  # noqa: E402


@pytest.fixture
def r(request):
    """Result object the test_* functions attach their messages to."""
    return TestResult(request.node.name)
