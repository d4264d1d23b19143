"""Tests for dashboard completion percentage."""

import pytest

from src.cybertask.services.dashboard_service import completion_percent

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("completed", "total", "percent"),
    [(0, 0, 0), (0, 5, 0), (1, 8, 13), (1, 40, 3), (5, 8, 63), (1, 3, 33), (2, 3, 67), (4, 4, 100)],
)
def test_completion_percent_rounds_half_up(completed: int, total: int, percent: int):
    assert completion_percent(completed, total) == percent
