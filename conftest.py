from pathlib import Path

import pytest

from storyloom.models import GenerationSettings
from storyloom.storage import Storage


@pytest.fixture
def store(tmp_path: Path) -> Storage:
    """Fresh JSON store under the test's tmp dir."""
    return Storage(tmp_path / "data")


@pytest.fixture
def fast_settings() -> GenerationSettings:
    """Controller timings shrunk so scheduled work finishes within a test."""
    return GenerationSettings(choice_timeout=0.2, choice_delay=0, custom_choice_delay=0)
