"""Initial registry schema."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("display_name", sa.String(length=128), nullable=True),
        sa.Column(
            "kind",
            sa.String(length=16),
            nullable=False,
            server_default="individual",
        ),
        sa.Column("public_key", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "packages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "owner_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("name_key", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("topics", sa.JSON(), nullable=True),
        sa.Column("language", sa.String(length=64), nullable=True),
        sa.Column("license", sa.String(length=64), nullable=True),
        sa.Column("homepage", sa.String(length=512), nullable=True),
        sa.Column("source_url", sa.String(length=512), nullable=True),
        sa.Column("stars", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("download_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("search_text", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "visibility",
            sa.String(length=16),
            nullable=False,
            server_default="public",
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("owner_id", "name_key", name="uq_packages_owner_name"),
    )
    op.create_index("ix_packages_owner_id", "packages", ["owner_id"])
    op.create_index("ix_packages_stars", "packages", ["stars"])
    op.create_index("ix_packages_updated_at", "packages", ["updated_at"])
    op.create_index("ix_packages_visibility", "packages", ["visibility"])

    op.create_table(
        "releases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "package_id",
            sa.Integer(),
            sa.ForeignKey("packages.id"),
            nullable=False,
        ),
        sa.Column("version", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("draft", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("prerelease", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("checksum", sa.String(length=128), nullable=True),
        sa.Column("download_url", sa.String(length=1024), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=False, server_default="0"),
        _timestamp("published_at"),
        sa.UniqueConstraint("package_id", "version", name="uq_releases_package_version"),
    )
    op.create_index("ix_releases_package_id", "releases", ["package_id"])

    op.create_table(
        "aliases",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column(
            "package_id",
            sa.Integer(),
            sa.ForeignKey("packages.id"),
            nullable=False,
        ),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_aliases_package_id", "aliases", ["package_id"])

    op.create_table(
        "download_stats",
        sa.Column(
            "release_id",
            sa.Integer(),
            sa.ForeignKey("releases.id"),
            nullable=False,
        ),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column(
            "package_id",
            sa.Integer(),
            sa.ForeignKey("packages.id"),
            nullable=False,
        ),
        sa.Column("download_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("last_downloaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("release_id", "day"),
    )
    op.create_index(
        "ix_download_stats_package_day",
        "download_stats",
        ["package_id", "day"],
    )

    settings = op.create_table(
        "registry_settings",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=True),
        _timestamp("updated_at"),
    )
    op.bulk_insert(
        settings,
        [
            {"key": "registry_name", "value": "Package Registry"},
            {"key": "registry_url", "value": "http://localhost:8080"},
            {"key": "api_version", "value": "v1"},
            {"key": "allow_public_publish", "value": "1"},
        ],
    )


def downgrade() -> None:
    op.drop_table("registry_settings")
    op.drop_index("ix_download_stats_package_day", table_name="download_stats")
    op.drop_table("download_stats")
    op.drop_index("ix_aliases_package_id", table_name="aliases")
    op.drop_table("aliases")
    op.drop_index("ix_releases_package_id", table_name="releases")
    op.drop_table("releases")
    op.drop_index("ix_packages_visibility", table_name="packages")
    op.drop_index("ix_packages_updated_at", table_name="packages")
    op.drop_index("ix_packages_stars", table_name="packages")
    op.drop_index("ix_packages_owner_id", table_name="packages")
    op.drop_table("packages")
    op.drop_table("accounts")
