# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: process-wide key/value settings (sync timestamps, migration
summaries). Persisted like any entity; nothing is cached in memory.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from pbl_teams.core.database import insert_for, settings_table


class SettingRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def get(self, key: str) -> Optional[Any]:
        with self._engine.connect() as conn:
            return conn.execute(
                select(settings_table.c.value).where(settings_table.c.key == key)
            ).scalar()

    def put(self, key: str, value: Any) -> None:
        now = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            stmt = insert_for(conn, settings_table).values(key=key, value=value, updated_at=now)
            conn.execute(
                stmt.on_conflict_do_update(
                    index_elements=["key"],
                    set_={"value": stmt.excluded.value, "updated_at": now},
                )
            )
