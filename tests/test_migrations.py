from sqlalchemy import create_engine, inspect, text

from registry_core.db.migrations import upgrade_database


def test_upgrade_creates_schema_and_seeds_settings(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    upgrade_database(url)

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert {
            "accounts",
            "packages",
            "releases",
            "aliases",
            "download_stats",
            "registry_settings",
        } <= tables
        with engine.connect() as conn:
            rows = dict(conn.execute(text("SELECT key, value FROM registry_settings")).all())
        assert rows["api_version"] == "v1"
        assert rows["allow_public_publish"] == "1"
    finally:
        engine.dispose()
