"""
Placemarks Backend: Maintenance SQLAlchemy Models
===================================================

What:  ORM models for the two tables the monitoring services write to.
Who:   MaintenanceService (maintenance_log) and IndexMonitor
       (index_usage_snapshots); Alembic reads them for migrations.

Tables:
    maintenance_log        one row per alert or maintenance operation
    index_usage_snapshots  point-in-time copy of pg_stat_user_indexes,
                           used to compute usage trends between snapshots
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from placemarks.database import Base


class MaintenanceLog(Base):
    """
    Audit trail of maintenance operations and alerts.

    operation_type examples: URGENT_ALERT, WARNING_ALERT, INDEX_HEALTH_ALERT,
    VACUUM, ANALYZE.
    """

    __tablename__ = "maintenance_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation_type: Mapped[str] = mapped_column(String(64), nullable=False)
    table_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dead_rows_before: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    dead_rows_after: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=text("'completed'")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("NOW()"),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_maintenance_log_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<MaintenanceLog(type={self.operation_type}, status={self.status})>"


class IndexUsageSnapshot(Base):
    """One index's scan counters at the moment a snapshot was recorded."""

    __tablename__ = "index_usage_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_name: Mapped[str] = mapped_column(String(255), nullable=False)
    index_name: Mapped[str] = mapped_column(String(255), nullable=False)
    index_size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    scan_count: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tuples_read: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tuples_fetched: Mapped[int] = mapped_column(BigInteger, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("NOW()"),
    )

    __table_args__ = (
        Index("idx_index_usage_snapshots_index_time", "index_name", "recorded_at"),
    )
