"""SQLite database operations for TripSettle."""

import sqlite3
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import Settlement


class Database:
    """SQLite store for completed settlements."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        # Shared across settlement ledgers; access is serialized by self._lock
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Completed settlements table (append-only)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settlements (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL,
                payer_id TEXT NOT NULL,
                receiver_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                currency TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                settled_at TIMESTAMP,
                completed INTEGER NOT NULL DEFAULT 0,
                note TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_settlements_group
            ON settlements (group_id)
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Settlement operations
    # ========================================================================

    def append(self, settlement: Settlement):
        """Save a completed settlement record."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                INSERT INTO settlements (
                    id, group_id, payer_id, receiver_id, amount, currency,
                    created_at, settled_at, completed, note
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    settlement.id,
                    settlement.group_id,
                    settlement.payer_id,
                    settlement.receiver_id,
                    str(settlement.amount),  # TEXT keeps the exact decimal
                    settlement.currency,
                    settlement.created_at.isoformat(),
                    settlement.settled_at.isoformat() if settlement.settled_at else None,
                    int(settlement.completed),
                    settlement.note,
                ),
            )
            self.conn.commit()

    def list_for_group(self, group_id: str) -> list[Settlement]:
        """Get all settlements recorded for a group, oldest first."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT id, group_id, payer_id, receiver_id, amount, currency,
                       created_at, settled_at, completed, note
                FROM settlements
                WHERE group_id = ?
                ORDER BY rowid
                """,
                (group_id,),
            )
            rows = cursor.fetchall()

        return [
            Settlement(
                id=row["id"],
                group_id=row["group_id"],
                payer_id=row["payer_id"],
                receiver_id=row["receiver_id"],
                amount=Decimal(row["amount"]),
                currency=row["currency"],
                created_at=datetime.fromisoformat(row["created_at"]),
                settled_at=(
                    datetime.fromisoformat(row["settled_at"])
                    if row["settled_at"]
                    else None
                ),
                completed=bool(row["completed"]),
                note=row["note"],
            )
            for row in rows
        ]
