# pyright: standard

import pytest
import pytest_asyncio

from histnav.models import VersionEntry
from histnav.navigator import VersionNavigator
from tests.helpers import PROJECT_ID, FakeBackend, RecordingEditor, make_versions


@pytest.fixture
def versions() -> list[VersionEntry]:
    """V0 (head), V1, V2 (initial)."""
    return make_versions(3)


@pytest.fixture
def backend(versions: list[VersionEntry]) -> FakeBackend:
    return FakeBackend(versions)


@pytest.fixture
def editor() -> RecordingEditor:
    return RecordingEditor()


@pytest_asyncio.fixture
async def navigator(backend: FakeBackend) -> VersionNavigator:
    """A navigator with the version list already loaded; the initial list call is not in backend.calls."""
    nav = VersionNavigator(backend, PROJECT_ID)
    assert await nav.refresh()
    backend.calls.clear()
    return nav
