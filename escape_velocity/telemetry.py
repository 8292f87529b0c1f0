"""Optional gameplay telemetry stored in SQLite."""
from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MetricType(Enum):
    """Types of metrics tracked."""
    TURN = "turn"
    GAME_PROGRESSION = "game_progression"
    ERROR_RATE = "error_rate"


@dataclass
class MetricEvent:
    """Individual metric event."""
    timestamp: float
    metric_type: MetricType
    name: str
    value: float
    tags: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


class TelemetryCollector:
    """Buffers metric events and writes them to a ``metrics`` table."""

    def __init__(self, db_path: Optional[Path] = None, buffer_size: int = 100):
        self.db_path = db_path or Path("telemetry.db")
        self._buffer_size = buffer_size
        self._metrics_buffer: List[MetricEvent] = []
        self._init_database()

    def _init_database(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS metrics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL NOT NULL,
                    metric_type TEXT NOT NULL,
                    name TEXT NOT NULL,
                    value REAL NOT NULL,
                    tags TEXT,
                    metadata TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_metrics_type_name
                ON metrics(metric_type, name)
            """)
            conn.commit()

    def track_turn(
        self,
        game_id: str,
        difficulty: str,
        week: int,
        outcome: str,
        duration_ms: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Track one processed week."""
        metadata = dict(details or {})
        if duration_ms is not None:
            metadata["duration_ms"] = duration_ms
        self.record(
            MetricType.TURN,
            "turn_processed",
            float(week),
            tags={"game_id": game_id, "difficulty": difficulty, "outcome": outcome},
            metadata=metadata,
        )

    def track_game_progression(
        self,
        event_name: str,
        value: float,
        game_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Track synergies, milestones and similar progression events."""
        tags = {}
        if game_id:
            tags["game_id"] = game_id
        self.record(MetricType.GAME_PROGRESSION, event_name, value, tags=tags, metadata=details or {})

    def track_error(self, error_type: str, game_id: Optional[str] = None, error_details: Optional[str] = None):
        """Track rejected engine calls."""
        tags = {}
        if game_id:
            tags["game_id"] = game_id
        self.record(
            MetricType.ERROR_RATE,
            error_type,
            1.0,
            tags=tags,
            metadata={"error_details": error_details} if error_details else {},
        )

    def record(
        self,
        metric_type: MetricType,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Record a metric event."""
        self._metrics_buffer.append(
            MetricEvent(
                timestamp=time.time(),
                metric_type=metric_type,
                name=name,
                value=value,
                tags=tags or {},
                metadata=metadata or {},
            )
        )
        if len(self._metrics_buffer) >= self._buffer_size:
            self.flush()

    def flush(self):
        """Flush buffered metrics to database."""
        if not self._metrics_buffer:
            return
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.executemany(
                    """
                    INSERT INTO metrics
                    (timestamp, metric_type, name, value, tags, metadata)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            event.timestamp,
                            event.metric_type.value,
                            event.name,
                            event.value,
                            json.dumps(event.tags),
                            json.dumps(event.metadata),
                        )
                        for event in self._metrics_buffer
                    ],
                )
                conn.commit()
        except sqlite3.Error:
            logger.exception("Failed to flush %d metrics", len(self._metrics_buffer))
            return
        logger.debug("Flushed %d metrics to database", len(self._metrics_buffer))
        self._metrics_buffer.clear()

    def get_turn_summary(self, game_id: Optional[str] = None) -> Dict[str, Any]:
        """Turn counts and outcomes, optionally for a single game."""
        query = """
            SELECT json_extract(tags, '$.outcome') AS outcome, COUNT(*), MAX(value)
            FROM metrics
            WHERE metric_type = ?
        """
        params: List[Any] = [MetricType.TURN.value]
        if game_id:
            query += " AND json_extract(tags, '$.game_id') = ?"
            params.append(game_id)
        query += " GROUP BY outcome"
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return {
            "turns": sum(row[1] for row in rows),
            "outcomes": {row[0]: row[1] for row in rows},
            "last_week": max((row[2] for row in rows), default=0),
        }

    def get_progression_counts(self, game_id: Optional[str] = None) -> Dict[str, int]:
        query = "SELECT name, COUNT(*) FROM metrics WHERE metric_type = ?"
        params: List[Any] = [MetricType.GAME_PROGRESSION.value]
        if game_id:
            query += " AND json_extract(tags, '$.game_id') = ?"
            params.append(game_id)
        query += " GROUP BY name"
        with sqlite3.connect(self.db_path) as conn:
            return {row[0]: row[1] for row in conn.execute(query, params).fetchall()}

    def cleanup_old_data(self, days_to_keep: int = 30) -> int:
        """Delete events older than ``days_to_keep`` days."""
        cutoff_time = time.time() - (days_to_keep * 86400)
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM metrics WHERE timestamp < ?", (cutoff_time,))
            deleted = cursor.rowcount
            conn.commit()
        logger.info("Cleaned up %d old metric events", deleted)
        return deleted


__all__ = ["MetricEvent", "MetricType", "TelemetryCollector"]
