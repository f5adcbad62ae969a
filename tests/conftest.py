from __future__ import annotations

import sys
from pathlib import Path


_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))

import pytest  # noqa: E402

from intake_wizard.layout import default_layout  # noqa: E402
from intake_wizard.notify import RecordingNotifier  # noqa: E402
from intake_wizard.schemas import default_answers  # noqa: E402
from intake_wizard.state import MemoryStorage, PersistedState  # noqa: E402


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def state(storage: MemoryStorage) -> PersistedState:
    return PersistedState.load(storage, default_answers())


@pytest.fixture
def layout(state: PersistedState):
    lay = default_layout()
    lay.bind(state)
    return lay


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
