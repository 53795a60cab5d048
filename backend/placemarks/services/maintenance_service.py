"""
Placemarks Backend: Table Maintenance Service
===============================================

What:  Table bloat health checks, maintenance alerts, and the markdown
       maintenance report.
How:   Reads check_table_bloat(), get_urgent_maintenance_tables() and
       get_autovacuum_settings(); writes alerts to maintenance_log.
Who:   GET/POST /api/maintenance/report, GET /api/health/database, and
       IndexMonitor (for alert logging).

Priority buckets:
    CRITICAL          → urgent_tables  (database is not healthy)
    HIGH, MEDIUM      → warning_tables (healthy, but maintenance recommended)
    LOW               → summary counts only

Failure model:
    check_database_health() and generate_maintenance_report() do not raise
    on database errors. The health check degrades to an empty unhealthy
    report and the report renders an ERROR document, so an operator
    downloading the report always gets something readable. Raw query
    helpers raise DatabaseError.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from placemarks.exceptions import DatabaseError
from placemarks.models.maintenance import MaintenanceLog
from placemarks.schemas.monitoring import (
    AutovacuumSetting,
    DatabaseHealthReport,
    HealthSummary,
    MaintenanceRecommendation,
    TableBloatInfo,
)
from placemarks.services.sql_base import DATABASE_ERRORS, MonitoringQueries

logger = logging.getLogger(__name__)


def _pct(value: float) -> str:
    """12.0 → '12', 12.5 → '12.5'."""
    return f"{value:g}"


class MaintenanceService(MonitoringQueries):
    """Table-level maintenance monitoring."""

    async def check_table_bloat(self) -> List[TableBloatInfo]:
        rows = await self._fetch_rows("check_table_bloat", "Database health check failed")
        return [TableBloatInfo.model_validate(row) for row in rows]

    async def get_urgent_maintenance_tables(self) -> List[MaintenanceRecommendation]:
        rows = await self._fetch_rows(
            "get_urgent_maintenance_tables", "Maintenance recommendations failed"
        )
        return [MaintenanceRecommendation.model_validate(row) for row in rows]

    async def get_autovacuum_settings(self) -> List[AutovacuumSetting]:
        rows = await self._fetch_rows(
            "get_autovacuum_settings", "Failed to get autovacuum settings"
        )
        return [AutovacuumSetting.model_validate(row) for row in rows]

    # ── Health ────────────────────────────────────────────────────────────

    async def check_database_health(self) -> DatabaseHealthReport:
        """
        Build the table health report and raise alerts for tables that need
        maintenance.

        Returns:
            DatabaseHealthReport. On database failure: healthy=False with
            empty table lists and zeroed summary.
        """
        try:
            all_tables = await self.check_table_bloat()
            recommendations = await self.get_urgent_maintenance_tables()
        except DatabaseError as e:
            logger.error("Database health check error: %s", e.message)
            return DatabaseHealthReport(healthy=False, timestamp=datetime.now(timezone.utc))

        urgent = [r for r in recommendations if r.priority == "CRITICAL"]
        warning = [r for r in recommendations if r.priority in ("HIGH", "MEDIUM")]

        summary = HealthSummary(
            total_tables=len(all_tables),
            critical_tables=len(urgent),
            high_priority_tables=sum(1 for r in recommendations if r.priority == "HIGH"),
            medium_priority_tables=sum(1 for r in recommendations if r.priority == "MEDIUM"),
        )

        if urgent:
            await self._send_urgent_alert(urgent)
        if warning:
            await self._send_warning_alert(warning)

        return DatabaseHealthReport(
            healthy=not urgent,
            timestamp=datetime.now(timezone.utc),
            urgent_tables=urgent,
            warning_tables=warning,
            all_tables=all_tables,
            summary=summary,
        )

    async def _send_urgent_alert(self, tables: List[MaintenanceRecommendation]) -> None:
        logger.error(
            "URGENT DATABASE MAINTENANCE REQUIRED: %s",
            "; ".join(
                f"{t.table_name} ({_pct(t.dead_row_percentage)}% dead) -> {t.recommended_action}"
                for t in tables
            ),
        )
        await self.log_maintenance_operation(
            "URGENT_ALERT",
            status="sent",
            notes=(
                f"Urgent alert sent for {len(tables)} tables: "
                f"{', '.join(t.table_name for t in tables)}"
            ),
        )

    async def _send_warning_alert(self, tables: List[MaintenanceRecommendation]) -> None:
        logger.warning(
            "DATABASE MAINTENANCE RECOMMENDED: %s",
            "; ".join(
                f"{t.table_name} ({_pct(t.dead_row_percentage)}% dead, {t.priority})"
                for t in tables
            ),
        )
        await self.log_maintenance_operation(
            "WARNING_ALERT",
            status="sent",
            notes=(
                f"Warning alert sent for {len(tables)} tables: "
                f"{', '.join(t.table_name for t in tables)}"
            ),
        )

    async def log_maintenance_operation(
        self,
        operation_type: str,
        table_name: Optional[str] = None,
        duration_ms: Optional[int] = None,
        dead_rows_before: Optional[int] = None,
        dead_rows_after: Optional[int] = None,
        status: str = "completed",
        notes: Optional[str] = None,
    ) -> None:
        """
        Append a row to maintenance_log.

        Logging is best-effort: a failed insert is logged and swallowed so
        that an alert never turns a health check into an error.
        """
        entry = MaintenanceLog(
            operation_type=operation_type,
            table_name=table_name,
            duration_ms=duration_ms,
            dead_rows_before=dead_rows_before,
            dead_rows_after=dead_rows_after,
            status=status,
            notes=notes,
        )
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except DATABASE_ERRORS as e:
            logger.error("Failed to log maintenance operation %s: %s", operation_type, e)

    # ── Report ────────────────────────────────────────────────────────────

    async def generate_maintenance_report(self) -> str:
        """
        Markdown report for manual review.

        Sections: header and status, summary counts, urgent tables, warning
        tables, a table of every table's bloat, and autovacuum settings.
        """
        try:
            health = await self.check_database_health()
            autovacuum = await self.get_autovacuum_settings()
        except DatabaseError as e:
            logger.error("Error generating maintenance report: %s", e.message)
            return (
                "# Database Maintenance Report - ERROR\n\n"
                f"Failed to generate report: {e.message}\n"
                f"Timestamp: {datetime.now(timezone.utc).isoformat()}"
            )
        return render_maintenance_report(health, autovacuum)


def render_maintenance_report(
    health: DatabaseHealthReport,
    autovacuum: List[AutovacuumSetting],
) -> str:
    status = "✅ HEALTHY" if health.healthy else "⚠️ NEEDS ATTENTION"
    lines = [
        "# Database Maintenance Report",
        f"Generated: {health.timestamp.isoformat()}",
        f"Status: {status}",
        "",
        "## Summary",
        f"- Total Tables: {health.summary.total_tables}",
        f"- Critical Issues: {health.summary.critical_tables}",
        f"- High Priority: {health.summary.high_priority_tables}",
        f"- Medium Priority: {health.summary.medium_priority_tables}",
        "",
    ]

    for heading, tables in (
        ("## 🚨 URGENT ACTION REQUIRED", health.urgent_tables),
        ("## ⚠️ MAINTENANCE RECOMMENDED", health.warning_tables),
    ):
        if not tables:
            continue
        lines += [heading, ""]
        for table in tables:
            lines += [
                f"### {table.table_name}",
                f"- Dead Row Percentage: {_pct(table.dead_row_percentage)}%",
                f"- Priority: {table.priority}",
                f"- Action: `{table.recommended_action}`",
                "",
            ]

    lines += [
        "## All Tables Status",
        "",
        "| Table | Live Rows | Dead Rows | Bloat % | Size | Status |",
        "|-------|-----------|-----------|---------|------|--------|",
    ]
    for t in health.all_tables:
        lines.append(
            f"| {t.table_name} | {t.live_rows} | {t.dead_rows} | "
            f"{_pct(t.dead_row_percentage)}% | {t.total_size} | {t.maintenance_status} |"
        )

    lines += [
        "",
        "## Autovacuum Settings",
        "",
        "| Setting | Value | Unit | Description |",
        "|---------|-------|------|-------------|",
    ]
    for s in autovacuum:
        lines.append(
            f"| {s.setting_name} | {s.current_value} | {s.unit or ''} | {s.description or ''} |"
        )

    return "\n".join(lines) + "\n"


def format_maintenance_recommendations(recommendations: List[MaintenanceRecommendation]) -> str:
    """One "PRIORITY: action" line per recommendation."""
    if not recommendations:
        return "No maintenance actions required."
    return "\n".join(f"{r.priority}: {r.recommended_action}" for r in recommendations)
