"""ORM model for daily download buckets."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base


class DownloadStatRecord(Base):
    """Aggregated download counter keyed by (release, day)."""

    __tablename__ = "download_stats"
    __table_args__ = (Index("ix_download_stats_package_day", "package_id", "day"),)

    release_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("releases.id"),
        primary_key=True,
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    package_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("packages.id"),
        nullable=False,
    )
    download_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_downloaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
