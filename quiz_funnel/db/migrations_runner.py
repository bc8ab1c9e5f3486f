"""Journaled SQL migrations runner.

``migrations/`` holds the PostgreSQL schema and ``sqlite_migrations/`` the
SQLite rendition used locally and in tests. Files are applied in lexical
order, inside one transaction, and recorded with their sha256 in
``<dir>/_journal.json``. A recorded file is never re-applied; if its content
changed since, a warning is logged.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

JOURNAL_NAME = "_journal.json"


class MigrationJournal:
    """File-backed record of applied migrations for one directory."""

    def __init__(self, root: Path) -> None:
        self.path = root / JOURNAL_NAME
        self.entries: List[Dict[str, str]] = self._read()

    def _read(self) -> List[Dict[str, str]]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.error("migrations.journal_unreadable path=%s", self.path, exc_info=True)
            return []
        return [e for e in data if isinstance(e, dict)] if isinstance(data, list) else []

    def checksums(self) -> Dict[str, str]:
        return {Path(e.get("filename", "")).name: e.get("sha256", "") for e in self.entries}

    def record(self, filename: str, sha256: str) -> None:
        self.entries.append(
            {
                "filename": filename,
                "sha256": sha256,
                "applied_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            }
        )
        tmp = self.path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(self.entries, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


def _run_script(conn: Connection, sql: str) -> None:
    # pysqlite rejects several statements per execute(); use executescript there
    if conn.dialect.name == "sqlite":
        conn.connection.driver_connection.executescript(sql)
    else:
        conn.exec_driver_sql(sql)


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] = "migrations") -> list[str]:
    """Apply pending ``*.sql`` files from ``migrations_dir``; return their names."""
    root = Path(migrations_dir)
    if not root.is_dir():
        logger.warning("migrations.dir_missing path=%s", root)
        return []

    journal = MigrationJournal(root)
    recorded = journal.checksums()
    applied: list[str] = []
    with engine.begin() as conn:
        for sql_path in sorted(root.glob("*.sql")):
            sql = sql_path.read_text(encoding="utf-8")
            digest = hashlib.sha256(sql.encode("utf-8")).hexdigest()
            if sql_path.name in recorded:
                if recorded[sql_path.name] and recorded[sql_path.name] != digest:
                    logger.warning("migrations.changed_after_apply file=%s", sql_path.name)
                continue
            if not sql.strip():
                continue
            _run_script(conn, sql)
            journal.record(f"{root.name}/{sql_path.name}", digest)
            applied.append(sql_path.name)
            logger.info("migrations.applied file=%s", sql_path.name)
    return applied


__all__ = ["MigrationJournal", "apply_migrations"]
