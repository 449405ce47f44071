from pathlib import Path

import pytest


@pytest.fixture
def sample_app_dir() -> Path:
    return Path(__file__).parent / "sample_app"
