import pytest

from registry_core.config.settings import RegistrySettings
from registry_core.db.session import Database
from registry_core.service.facade import RegistryFacade


@pytest.fixture()
def settings(tmp_path) -> RegistrySettings:
    return RegistrySettings(
        database_url=f"sqlite:///{tmp_path / 'registry.db'}",
        search_default_limit=20,
        search_max_limit=100,
        summary_max_days=366,
    )


@pytest.fixture()
def database(settings):
    db = Database.from_settings(settings)
    db.create_all()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture()
def registry(database, settings) -> RegistryFacade:
    return RegistryFacade(database=database, settings=settings)


@pytest.fixture()
def owner(registry) -> str:
    registry.create_account("alice", display_name="Alice")
    return "alice"
