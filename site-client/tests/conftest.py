from pathlib import Path

import pytest

from fakes import MemoryStore
from folio_site.config import Config
from folio_site.mutations import ContentEditor, Notice
from folio_site.sync import DataSynchronizer, SiteState


@pytest.fixture
def config() -> Config:
    return Config(
        database_url="https://folio-test-default-rtdb.firebaseio.com",
        firebase_credentials_path=Path("credentials.json"),
        web_api_key="test-key",
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def state(store: MemoryStore) -> SiteState:
    state = SiteState()
    DataSynchronizer(store, state).start()
    return state


@pytest.fixture
def notices() -> list[Notice]:
    return []


@pytest.fixture
def editor(store: MemoryStore, notices: list[Notice]) -> ContentEditor:
    return ContentEditor(store, notices.append)
