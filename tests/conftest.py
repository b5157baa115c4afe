import pytest

from tests.spotify_helpers import FakeSpotify


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify()
