"""Test configuration and fixtures."""

from datetime import datetime

import pytest

from dsat_probe.core.config import ProbeSettings
from dsat_probe.core.params import ParameterSet


@pytest.fixture
def fixed_moment():
    """A fixed clock reading: 2024-03-05 09:07:42."""
    return datetime(2024, 3, 5, 9, 7, 42)


@pytest.fixture
def fixed_clock(fixed_moment):
    """Clock that always returns the fixed moment."""
    return lambda: fixed_moment


@pytest.fixture
def base_params():
    """Route-data parameters in the web client's order."""
    return ParameterSet.from_pairs(
        [("routeName", "33"), ("dir", "0"), ("lang", "zh-tw"), ("device", "web")]
    )


@pytest.fixture
def settings():
    """Default settings with a short timeout."""
    return ProbeSettings(timeout=1.0)


@pytest.fixture
def sample_route_data():
    """Sample getRouteData.html JSON response."""
    return {
        "header": "000",
        "data": {
            "routeCode": "00033",
            "routeName": "33",
            "direction": "0",
            "routeInfo": [
                {
                    "staCode": "M172",
                    "staName": "筷子基總站",
                    "busInfo": [],
                },
                {
                    "staCode": "M171",
                    "staName": "筷子基/和樂坊",
                    "busInfo": [{"busPlate": "MV1234", "status": "1"}],
                },
                {
                    "staCode": "M165",
                    "staName": "提督/紅街市",
                    "busInfo": [],
                },
            ],
        },
    }


@pytest.fixture
def temp_config_file(tmp_path):
    """Write a settings file and return its path."""

    def _write(content: str):
        path = tmp_path / "settings.json"
        path.write_text(content, encoding="utf-8")
        return path

    return _write
