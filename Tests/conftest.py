# Tests/conftest.py
# Shared fixtures for the sync engine tests.
#
# Imports
#
# Third-Party Imports
import pytest
#
# Local Imports
from continuity_sync.DB.Photo_Cache_DB import PhotoCacheDB
from continuity_sync.Project_State.local_state import LocalProjectState
from sync_test_utils import FakeRemoteStore, FakeSessionProvider, FakeClock, make_project
#
########################################################################################################################
#
# Fixtures:


@pytest.fixture
def fake_store():
    return FakeRemoteStore()


@pytest.fixture
def fake_session():
    return FakeSessionProvider()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def photo_cache():
    cache = PhotoCacheDB(":memory:")
    yield cache
    cache.close_connection()


@pytest.fixture
def project():
    return make_project()


@pytest.fixture
def local_state(project):
    return LocalProjectState(project)

#
# End of conftest.py
########################################################################################################################
