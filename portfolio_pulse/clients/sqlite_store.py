"""SQLite-backed archive of previously generated company analyses."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import List

from portfolio_pulse.schemas import PriorAnalysis


class SQLiteAnalysisArchive:
    """Prior analyses stored in a single table keyed by analysis id."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS prior_analyses (
                    analysis_id TEXT PRIMARY KEY,
                    company_id TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT '',
                    summary TEXT NOT NULL DEFAULT ''
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_prior_analyses_company "
                "ON prior_analyses (company_id, created_at)"
            )

    def put(self, analysis: PriorAnalysis) -> None:
        """Insert or replace one analysis; called by whichever job produces analyses."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO prior_analyses (analysis_id, company_id, created_at, status, summary)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(analysis_id) DO UPDATE SET
                    company_id = excluded.company_id,
                    created_at = excluded.created_at,
                    status = excluded.status,
                    summary = excluded.summary
                """,
                (
                    analysis.analysis_id,
                    analysis.company_id,
                    analysis.created_at,
                    analysis.status,
                    analysis.summary,
                ),
            )

    def list_for_company_sync(self, company_id: str) -> List[PriorAnalysis]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT analysis_id, company_id, created_at, status, summary
                FROM prior_analyses
                WHERE company_id = ?
                ORDER BY created_at DESC
                """,
                (company_id,),
            ).fetchall()
        return [PriorAnalysis(**dict(row)) for row in rows]

    async def list_for_company(self, company_id: str) -> List[PriorAnalysis]:
        """Newest first."""
        return await asyncio.to_thread(self.list_for_company_sync, company_id)


__all__ = ["SQLiteAnalysisArchive"]
