"""Runs the ``app.py`` beside each example test.

``example_app`` executes the script afresh for every test and exposes its
globals as attributes, so each test gets its own Environment.
"""

import runpy
from pathlib import Path
from types import SimpleNamespace

import pytest


@pytest.fixture
def example_app(request: pytest.FixtureRequest) -> SimpleNamespace:
    app_path = Path(request.path).parent / "app.py"
    namespace = runpy.run_path(str(app_path), run_name=f"trellis_example_{app_path.parent.name}")
    return SimpleNamespace(**namespace)
