"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from hanzinet.documents.models import Arrow, Flashcard, FlashcardSet, Position, Side  # noqa: E402
from hanzinet.store.cedict import CedictEntry  # noqa: E402
from hanzinet.store.state_store import StateStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed point in time."""
    return datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def sample_entries():
    """Provide a few dictionary entries for testing."""
    return [
        CedictEntry("學", "学", "xue2", ["to learn", "to study"]),
        CedictEntry("習", "习", "xi2", ["to practice", "to study"]),
        CedictEntry("學習", "学习", "xue2 xi2", ["to learn", "to study"]),
        CedictEntry("好", "好", "hao3", ["good", "well"]),
        CedictEntry("人", "人", "ren2", ["person", "people"]),
    ]


@pytest.fixture
def state_store(tmp_path):
    """A state store backed by a temporary database."""
    store = StateStore(tmp_path / "state.db")
    yield store
    store.close()


@pytest.fixture
def loaded_store(state_store, sample_entries):
    """A state store with the sample entries imported and ranked."""
    state_store.import_items(
        sample_entries,
        character_ranks={"学": 10, "习": 20, "好": 5, "人": 1},
        word_ranks={"学习": 3},
    )
    return state_store


@pytest.fixture
def simple_flashcard():
    """Provide a two-side flashcard with one arrow."""
    return Flashcard(
        id="card-1",
        name="学",
        sides=[
            Side(id="s1", value="学", position=Position(x=0, y=0)),
            Side(id="s2", value="xué", position=Position(x=300, y=0)),
        ],
        arrows=[Arrow(id="a1", source_id="s1", destination_id="s2", label="pinyin")],
    )


@pytest.fixture
def network_flashcard():
    """Provide a flashcard where one character links to several facts."""
    return Flashcard(
        id="card-net",
        name="好",
        sides=[
            Side(id="hao", value="好", position=Position(x=200, y=200)),
            Side(id="pinyin", value="hǎo", position=Position(x=500, y=200)),
            Side(id="meaning", value="good", position=Position(x=200, y=450)),
            Side(id="radical", value="女", position=Position(x=-100, y=200)),
            Side(id="word", value="好人", position=Position(x=500, y=450)),
        ],
        arrows=[
            Arrow(id="a-pinyin", source_id="hao", destination_id="pinyin", label="reading"),
            Arrow(id="a-meaning", source_id="hao", destination_id="meaning", label="meaning"),
            Arrow(id="a-radical", source_id="hao", destination_id="radical", label="component"),
            Arrow(id="a-word", source_id="meaning", destination_id="word", label="example"),
        ],
    )


@pytest.fixture
def flashcard_set(simple_flashcard, network_flashcard):
    """Provide a set holding both sample flashcards."""
    return FlashcardSet(id="set-1", name="Basics", flashcards=[simple_flashcard, network_flashcard])
