"""Repository for registry-wide settings."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from registry_core.db.models import RegistrySettingRecord

DEFAULT_REGISTRY_SETTINGS: dict[str, str] = {
    "registry_name": "Package Registry",
    "registry_url": "http://localhost:8080",
    "api_version": "v1",
    "allow_public_publish": "1",
}


class RegistrySettingRepository:
    def get(self, key: str, *, session: Session) -> Optional[RegistrySettingRecord]:
        return session.get(RegistrySettingRecord, key)

    def put(self, key: str, value: Optional[str], *, now: datetime, session: Session) -> RegistrySettingRecord:
        record = self.get(key, session=session)
        if record is None:
            record = RegistrySettingRecord(key=key, value=value, updated_at=now)
            session.add(record)
        else:
            record.value = value
            record.updated_at = now
        return record
