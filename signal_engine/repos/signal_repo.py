"""Signal repository — SQLite store for the latest result per asset/timeframe."""

import json
from datetime import datetime, timezone
from typing import Optional

from signal_engine.repos.db import get_connection


class SignalRepo:
    """Data access layer for computed signal records.

    Each (asset_id, timeframe) pair holds exactly one row; a new result
    replaces the previous one wholesale.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def upsert_result(self, result: dict) -> None:
        """Store an engine output record (as returned by ``EngineResult.to_dict``)."""
        signal = result["signal"]
        composite = result["composite"]
        updated_at = datetime.now(timezone.utc).isoformat()
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO trading_signals
                    (asset_id, timeframe, overall_signal, confidence,
                     risk_level, total_score, rating, result_json,
                     computed_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    result["asset_id"], result["timeframe"],
                    signal["overall_signal"], signal["confidence"],
                    signal["risk_level"], composite["total_score"],
                    composite["rating"], json.dumps(result),
                    result["computed_at"], updated_at,
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, asset_id: str, timeframe: str) -> None:
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                "DELETE FROM trading_signals WHERE asset_id = ? AND timeframe = ?",
                (asset_id, timeframe),
            )
            conn.commit()
        finally:
            conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_latest(self, asset_id: str, timeframe: str) -> Optional[dict]:
        """Return the stored output record, or ``None`` if never computed."""
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT result_json FROM trading_signals "
                "WHERE asset_id = ? AND timeframe = ?",
                (asset_id, timeframe),
            ).fetchone()
            if row is None:
                return None
            return json.loads(row["result_json"])
        finally:
            conn.close()

    def list_signals(
        self,
        limit: int = 20,
        signal_filter: Optional[str] = None,
    ) -> dict:
        """Return summary rows, newest first.

        Returns:
            ``{"signals": [...], "total": int}``
        """
        conn = get_connection(self._db_path)
        try:
            where_clause = ""
            params: list = []
            if signal_filter:
                where_clause = "WHERE overall_signal = ?"
                params.append(signal_filter)

            rows = conn.execute(
                f"SELECT asset_id, timeframe, overall_signal, confidence, "
                f"risk_level, total_score, rating, computed_at "
                f"FROM trading_signals {where_clause} "
                f"ORDER BY updated_at DESC LIMIT ?",
                (*params, limit),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) FROM trading_signals {where_clause}",
                params,
            ).fetchone()[0]

            return {"signals": [dict(row) for row in rows], "total": total}
        finally:
            conn.close()
