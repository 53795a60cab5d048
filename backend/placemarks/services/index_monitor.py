"""
Placemarks Backend: Index Monitoring Service
==============================================

What:  Index usage analysis, unused/missing index detection, index health
       checks and optimization suggestions.
How:   Reads the index monitoring SQL functions through MonitoringQueries.
       The full report runs its four queries concurrently with
       asyncio.gather, each on its own session.
Who:   GET /api/monitoring/indexes (every `action`).

Health thresholds (configurable via Settings):
    INDEX_UNUSED_ALERT_COUNT   unused indexes above this count  → issue
    INDEX_EFFICIENCY_ALERT     overall efficiency below this %  → issue
    INDEX_WASTED_BYTES_ALERT   wasted index space above this    → issue
    any HIGH/CRITICAL usage row                                 → issue
"""

import asyncio
import logging
import re
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from placemarks.config import Settings
from placemarks.exceptions import DatabaseError
from placemarks.schemas.monitoring import (
    IndexHealthCheck,
    IndexMonitoringReport,
    IndexMonitoringSummary,
    IndexOptimizationSuggestion,
    IndexSizeSummary,
    IndexUsageAnalysis,
    MissingIndexSuggestion,
    UnusedIndex,
)
from placemarks.services.maintenance_service import MaintenanceService
from placemarks.services.sql_base import DATABASE_ERRORS, MonitoringQueries

logger = logging.getLogger(__name__)

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(\w+)$")

_SIZE_MULTIPLIERS = {
    "bytes": 1,
    "kb": 1024,
    "mb": 1024 ** 2,
    "gb": 1024 ** 3,
}

_SIZE_UNITS = ["bytes", "KB", "MB", "GB"]

_SUGGESTION_ORDER = {"drop": 1, "create": 2, "modify": 3, "monitor": 4}

# Copies current counters into index_usage_snapshots; rowcount is the number
# of indexes recorded.
_RECORD_SNAPSHOT_SQL = text("""
    INSERT INTO index_usage_snapshots
        (table_name, index_name, index_size_bytes, scan_count, tuples_read, tuples_fetched)
    SELECT
        s.relname,
        s.indexrelname,
        pg_relation_size(s.indexrelid),
        s.idx_scan,
        s.idx_tup_read,
        s.idx_tup_fetch
    FROM pg_stat_user_indexes s
    WHERE s.schemaname = 'public'
""")


def parse_size_to_bytes(size: str) -> int:
    """
    Parse a pg_size_pretty() string ("12 MB", "8192 bytes") into bytes.

    Unparseable strings are 0; unknown units count as bytes.
    """
    match = _SIZE_PATTERN.match(size.strip())
    if not match:
        return 0
    value = float(match.group(1))
    unit = match.group(2).lower()
    return round(value * _SIZE_MULTIPLIERS.get(unit, 1))


def format_bytes(num_bytes: int) -> str:
    """1536 → '1.5 KB', 0 → '0 bytes'. Base 1024, one decimal, capped at GB."""
    if num_bytes <= 0:
        return "0 bytes"
    exponent = 0
    while num_bytes >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(num_bytes / (1024 ** exponent), 1)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


class IndexMonitor(MonitoringQueries):
    """
    Index health and optimization for the public schema.

    Args:
        session_factory:      App session factory.
        settings:             Supplies the health-check thresholds.
        maintenance_service:  Used to write INDEX_HEALTH_ALERT rows to
                              maintenance_log.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        maintenance_service: Optional[MaintenanceService] = None,
    ):
        super().__init__(session_factory)
        self.unused_alert_count = settings.index_unused_alert_count
        self.efficiency_alert = settings.index_efficiency_alert
        self.wasted_bytes_alert = settings.index_wasted_bytes_alert
        self._maintenance = maintenance_service

    # ── Raw queries ───────────────────────────────────────────────────────

    async def analyze_index_usage(self) -> List[IndexUsageAnalysis]:
        rows = await self._fetch_rows("analyze_index_usage", "Failed to analyze index usage")
        return [IndexUsageAnalysis.model_validate(row) for row in rows]

    async def get_unused_indexes(self) -> List[UnusedIndex]:
        rows = await self._fetch_rows("get_unused_indexes", "Failed to get unused indexes")
        return [UnusedIndex.model_validate(row) for row in rows]

    async def get_missing_index_suggestions(self) -> List[MissingIndexSuggestion]:
        rows = await self._fetch_rows(
            "suggest_missing_indexes", "Failed to get missing index suggestions"
        )
        return [MissingIndexSuggestion.model_validate(row) for row in rows]

    async def get_index_size_summary(self) -> List[IndexSizeSummary]:
        rows = await self._fetch_rows("get_index_size_summary", "Failed to get index size summary")
        return [IndexSizeSummary.model_validate(row) for row in rows]

    async def record_index_usage_snapshot(self) -> int:
        """
        Snapshot pg_stat_user_indexes into index_usage_snapshots.

        Returns:
            Number of index rows recorded.

        Raises:
            DatabaseError: The insert failed.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(_RECORD_SNAPSHOT_SQL)
                await session.commit()
        except DATABASE_ERRORS as e:
            reason = str(getattr(e, "orig", None) or e)
            logger.error("Failed to record index usage snapshot: %s", reason)
            raise DatabaseError(f"Failed to record index usage snapshot: {reason}") from e

        recorded = max(result.rowcount or 0, 0)
        logger.info("Recorded index usage snapshot for %d indexes", recorded)
        return recorded

    # ── Reports ───────────────────────────────────────────────────────────

    async def generate_index_monitoring_report(self) -> IndexMonitoringReport:
        """
        Full index report: summary, high-priority usage issues, unused and
        missing indexes, per-table sizes and text recommendations.

        Raises:
            DatabaseError: Any of the four queries failed.
        """
        usage, unused, missing, sizes = await asyncio.gather(
            self.analyze_index_usage(),
            self.get_unused_indexes(),
            self.get_missing_index_suggestions(),
            self.get_index_size_summary(),
        )

        total_indexes = sum(t.total_indexes for t in sizes)
        unused_count = sum(t.unused_indexes for t in sizes)
        total_bytes = sum(parse_size_to_bytes(t.total_index_size) for t in sizes)
        wasted_bytes = sum(parse_size_to_bytes(t.unused_index_size) for t in sizes)

        if total_indexes > 0:
            efficiency = round((total_indexes - unused_count) / total_indexes * 100)
        else:
            efficiency = 100

        return IndexMonitoringReport(
            summary=IndexMonitoringSummary(
                total_indexes=total_indexes,
                unused_indexes=unused_count,
                total_size=format_bytes(total_bytes),
                wasted_space=format_bytes(wasted_bytes),
                overall_efficiency=efficiency,
            ),
            high_priority_issues=[i for i in usage if i.priority in ("HIGH", "CRITICAL")],
            unused_indexes=unused,
            missing_indexes=missing,
            size_summary=sizes,
            recommendations=_index_recommendations(usage, unused, missing, sizes),
        )

    async def check_index_health(self) -> IndexHealthCheck:
        """
        Threshold check over the full report. Logs an alert (and a
        maintenance_log row) when any issue is found.

        Never raises: a failed report yields an unhealthy result pointing at
        database connectivity.
        """
        try:
            report = await self.generate_index_monitoring_report()
        except DatabaseError as e:
            logger.error("Error checking index health: %s", e.message)
            return IndexHealthCheck(
                healthy=False,
                issues=["Failed to check index health"],
                recommendations=["Check database connectivity and permissions"],
            )

        summary = report.summary
        issues: List[str] = []
        recommendations: List[str] = []

        if summary.unused_indexes > self.unused_alert_count:
            issues.append(f"{summary.unused_indexes} unused indexes found")
            recommendations.append("Review and drop unused indexes to improve performance")

        if summary.overall_efficiency < self.efficiency_alert:
            issues.append(f"Low index efficiency: {summary.overall_efficiency}%")
            recommendations.append("Optimize index usage patterns")

        if report.high_priority_issues:
            issues.append(f"{len(report.high_priority_issues)} high-priority index issues")
            recommendations.append("Address high-priority index performance issues")

        if parse_size_to_bytes(summary.wasted_space) > self.wasted_bytes_alert:
            issues.append(f"{summary.wasted_space} of wasted index space")
            recommendations.append("Drop unused indexes to reclaim disk space")

        if issues:
            await self._send_index_alert(issues, recommendations)

        return IndexHealthCheck(
            healthy=not issues,
            issues=issues,
            recommendations=recommendations,
        )

    async def _send_index_alert(self, issues: List[str], recommendations: List[str]) -> None:
        logger.warning(
            "INDEX PERFORMANCE ALERT: issues=%s recommendations=%s",
            issues,
            recommendations,
        )
        if self._maintenance is None:
            return
        await self._maintenance.log_maintenance_operation(
            "INDEX_HEALTH_ALERT",
            status="alert_sent",
            notes=(
                f"Issues: {', '.join(issues)}. "
                f"Recommendations: {', '.join(recommendations)}"
            ),
        )


def generate_index_optimization_suggestions(
    usage: List[IndexUsageAnalysis],
    unused: List[UnusedIndex],
    missing: List[MissingIndexSuggestion],
) -> List[IndexOptimizationSuggestion]:
    """
    Actionable suggestions, ordered drop → create → modify → monitor.

    Unused indexes become DROPs, missing-index suggestions become CREATEs,
    and MEDIUM-priority LOW_USAGE indexes are flagged for monitoring.
    """
    suggestions: List[IndexOptimizationSuggestion] = []

    for index in unused:
        suggestions.append(IndexOptimizationSuggestion(
            type="drop",
            table_name=index.table_name,
            index_name=index.index_name,
            reason="Index is never used and consuming disk space",
            impact=f"Reclaim {index.index_size} of disk space",
            sql_command=index.drop_command,
            estimated_benefit=f"Space savings: {index.index_size}",
            risk_level="low",
        ))

    for suggestion in missing:
        suggestions.append(IndexOptimizationSuggestion(
            type="create",
            table_name=suggestion.table_name,
            reason=suggestion.reason,
            impact="Improve query performance for common patterns",
            sql_command=suggestion.create_command,
            estimated_benefit="Faster query execution",
            risk_level="low" if suggestion.priority == "HIGH" else "medium",
        ))

    for index in usage:
        if index.usage_category != "LOW_USAGE" or index.priority != "MEDIUM":
            continue
        suggestions.append(IndexOptimizationSuggestion(
            type="monitor",
            table_name=index.table_name,
            index_name=index.index_name,
            reason="Low usage pattern detected",
            impact="Monitor for potential removal",
            sql_command=(
                "-- Monitor usage: SELECT * FROM pg_stat_user_indexes "
                f"WHERE indexrelname = '{index.index_name}';"
            ),
            estimated_benefit="Identify truly unused indexes over time",
            risk_level="low",
        ))

    # sorted() is stable, so input order holds within each type
    return sorted(suggestions, key=lambda s: _SUGGESTION_ORDER[s.type])


def _index_recommendations(
    usage: List[IndexUsageAnalysis],
    unused: List[UnusedIndex],
    missing: List[MissingIndexSuggestion],
    sizes: List[IndexSizeSummary],
) -> List[str]:
    recommendations: List[str] = []

    if unused:
        high_waste = [i for i in unused if i.space_wasted == "HIGH"]
        if high_waste:
            recommendations.append(
                f"Drop {len(high_waste)} high-waste unused indexes to reclaim significant disk space"
            )
        recommendations.append(f"Consider dropping {len(unused)} unused indexes total")

    high_missing = [m for m in missing if m.priority == "HIGH"]
    if high_missing:
        recommendations.append(
            f"Create {len(high_missing)} high-priority missing indexes for better performance"
        )

    low_efficiency = [t for t in sizes if t.efficiency_score < 50]
    if low_efficiency:
        recommendations.append(
            f"Review index strategy for {len(low_efficiency)} tables with low efficiency scores"
        )

    high_usage = [i for i in usage if i.priority == "HIGH"]
    if high_usage:
        recommendations.append(
            f"Address {len(high_usage)} high-priority index performance issues"
        )

    if not recommendations:
        recommendations.append("Index usage appears optimal - continue monitoring")

    return recommendations
