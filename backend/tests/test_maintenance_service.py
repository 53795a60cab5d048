"""
Placemarks Backend: Maintenance Service Unit Tests
====================================================

What:  Health categorization, alert logging and report rendering.
How:   mock_session answers `SELECT * FROM <fn>()` with canned rows; no
       database involved.

What we test:
    ✅ CRITICAL → urgent, HIGH/MEDIUM → warning, healthy iff no urgent
    ✅ Alerts write maintenance_log rows
    ✅ Database failures degrade instead of raising
    ✅ Markdown report sections
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from placemarks.exceptions import DatabaseError
from placemarks.models.maintenance import MaintenanceLog
from placemarks.schemas.monitoring import MaintenanceRecommendation
from placemarks.services.maintenance_service import (
    MaintenanceService,
    format_maintenance_recommendations,
)

BLOAT_ROWS = [
    {"table_name": "places", "live_rows": 9000, "dead_rows": 3000,
     "dead_row_percentage": 25.0, "total_size": "4096 kB", "maintenance_status": "CRITICAL"},
    {"table_name": "lists", "live_rows": 800, "dead_rows": 120,
     "dead_row_percentage": 13.04, "total_size": "256 kB", "maintenance_status": "NEEDS_VACUUM"},
    {"table_name": "users", "live_rows": 50, "dead_rows": 0,
     "dead_row_percentage": 0.0, "total_size": "64 kB", "maintenance_status": "OK"},
]

URGENT_ROWS = [
    {"table_name": "places", "dead_row_percentage": 25.0,
     "recommended_action": "VACUUM FULL ANALYZE places", "priority": "CRITICAL"},
    {"table_name": "lists", "dead_row_percentage": 13.04,
     "recommended_action": "VACUUM ANALYZE lists", "priority": "MEDIUM"},
]

AUTOVACUUM_ROWS = [
    {"setting_name": "autovacuum", "current_value": "on", "unit": None,
     "description": "Starts the autovacuum subprocess."},
    {"setting_name": "autovacuum_naptime", "current_value": "60", "unit": "s",
     "description": "Time to sleep between autovacuum runs."},
]


@pytest.fixture
def service(session_factory):
    return MaintenanceService(session_factory)


@pytest.fixture
def populated(mock_session):
    mock_session.function_rows.update({
        "check_table_bloat": BLOAT_ROWS,
        "get_urgent_maintenance_tables": URGENT_ROWS,
        "get_autovacuum_settings": AUTOVACUUM_ROWS,
    })
    return mock_session


class TestCheckDatabaseHealth:

    @pytest.mark.asyncio
    async def test_categorizes_recommendations(self, service, populated):
        health = await service.check_database_health()

        assert health.healthy is False
        assert [t.table_name for t in health.urgent_tables] == ["places"]
        assert [t.table_name for t in health.warning_tables] == ["lists"]
        assert len(health.all_tables) == 3
        assert health.summary.total_tables == 3
        assert health.summary.critical_tables == 1
        assert health.summary.high_priority_tables == 0
        assert health.summary.medium_priority_tables == 1

    @pytest.mark.asyncio
    async def test_healthy_without_critical_tables(self, service, mock_session):
        mock_session.function_rows["check_table_bloat"] = BLOAT_ROWS[2:]
        mock_session.function_rows["get_urgent_maintenance_tables"] = [
            {"table_name": "users", "dead_row_percentage": 6.0,
             "recommended_action": "VACUUM ANALYZE users", "priority": "LOW"},
        ]

        health = await service.check_database_health()

        assert health.healthy is True
        assert health.urgent_tables == []
        assert health.warning_tables == []
        mock_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_alerts_are_logged_to_maintenance_log(self, service, populated):
        await service.check_database_health()

        entries = [call.args[0] for call in populated.add.call_args_list]
        assert all(isinstance(e, MaintenanceLog) for e in entries)
        assert [e.operation_type for e in entries] == ["URGENT_ALERT", "WARNING_ALERT"]
        assert entries[0].status == "sent"
        assert "places" in entries[0].notes

    @pytest.mark.asyncio
    async def test_database_failure_returns_unhealthy_empty_report(self, service, mock_session):
        mock_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))

        health = await service.check_database_health()

        assert health.healthy is False
        assert health.all_tables == []
        assert health.summary.total_tables == 0

    @pytest.mark.asyncio
    async def test_unreachable_database_returns_unhealthy_empty_report(self, service, mock_session):
        mock_session.execute.side_effect = ConnectionRefusedError(
            111, "Connect call failed ('127.0.0.1', 5432)"
        )

        health = await service.check_database_health()

        assert health.healthy is False
        assert health.all_tables == []
        assert health.urgent_tables == []


class TestLogMaintenanceOperation:

    @pytest.mark.asyncio
    async def test_inserts_row(self, service, mock_session):
        await service.log_maintenance_operation(
            "VACUUM", table_name="places", duration_ms=1200,
            dead_rows_before=3000, dead_rows_after=0,
        )

        entry = mock_session.add.call_args.args[0]
        assert entry.operation_type == "VACUUM"
        assert entry.table_name == "places"
        assert entry.status == "completed"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_failure_is_swallowed(self, service, mock_session):
        mock_session.commit = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("read-only"))
        )

        await service.log_maintenance_operation("URGENT_ALERT")

    @pytest.mark.asyncio
    async def test_connection_failure_is_swallowed(self, service, mock_session):
        mock_session.commit = AsyncMock(side_effect=ConnectionRefusedError(111, "refused"))

        await service.log_maintenance_operation("WARNING_ALERT")


class TestRawQueries:

    @pytest.mark.asyncio
    async def test_query_failure_raises_database_error(self, service, mock_session):
        mock_session.execute.side_effect = OperationalError(
            "SELECT", {}, Exception("permission denied")
        )

        with pytest.raises(DatabaseError) as exc_info:
            await service.get_autovacuum_settings()

        assert exc_info.value.message.startswith("Failed to get autovacuum settings: ")

    @pytest.mark.asyncio
    async def test_connection_refused_raises_database_error(self, service, mock_session):
        mock_session.execute.side_effect = ConnectionRefusedError(111, "Connect call failed")

        with pytest.raises(DatabaseError, match="Database health check failed: .*Connect call failed"):
            await service.check_table_bloat()


class TestGenerateMaintenanceReport:

    @pytest.mark.asyncio
    async def test_report_sections(self, service, populated):
        report = await service.generate_maintenance_report()

        assert report.startswith("# Database Maintenance Report\n")
        assert "Status: ⚠️ NEEDS ATTENTION" in report
        assert "- Total Tables: 3" in report
        assert "- Critical Issues: 1" in report
        assert "## 🚨 URGENT ACTION REQUIRED" in report
        assert "### places" in report
        assert "- Dead Row Percentage: 25%" in report
        assert "- Action: `VACUUM FULL ANALYZE places`" in report
        assert "## ⚠️ MAINTENANCE RECOMMENDED" in report
        assert "| lists | 800 | 120 | 13.04% | 256 kB | NEEDS_VACUUM |" in report
        assert "| autovacuum_naptime | 60 | s | Time to sleep between autovacuum runs. |" in report
        assert "| autovacuum | on |  | Starts the autovacuum subprocess. |" in report

    @pytest.mark.asyncio
    async def test_healthy_report_omits_action_sections(self, service, mock_session):
        mock_session.function_rows["check_table_bloat"] = BLOAT_ROWS[2:]

        report = await service.generate_maintenance_report()

        assert "Status: ✅ HEALTHY" in report
        assert "URGENT ACTION REQUIRED" not in report
        assert "MAINTENANCE RECOMMENDED" not in report
        assert "| users | 50 | 0 | 0% | 64 kB | OK |" in report

    @pytest.mark.asyncio
    async def test_autovacuum_failure_renders_error_report(self, service, mock_session):
        mock_session.function_rows["get_autovacuum_settings"] = OperationalError(
            "SELECT", {}, Exception("timeout")
        )

        report = await service.generate_maintenance_report()

        assert report.startswith("# Database Maintenance Report - ERROR")
        assert "Failed to generate report: Failed to get autovacuum settings" in report

    @pytest.mark.asyncio
    async def test_unreachable_database_renders_error_report(self, service, mock_session):
        mock_session.execute.side_effect = ConnectionRefusedError(111, "Connect call failed")

        report = await service.generate_maintenance_report()

        assert report.startswith("# Database Maintenance Report - ERROR")
        assert "Connect call failed" in report


class TestFormatRecommendations:

    def test_empty(self):
        assert format_maintenance_recommendations([]) == "No maintenance actions required."

    def test_one_line_per_recommendation(self):
        recs = [MaintenanceRecommendation.model_validate(r) for r in URGENT_ROWS]
        assert format_maintenance_recommendations(recs) == (
            "CRITICAL: VACUUM FULL ANALYZE places\nMEDIUM: VACUUM ANALYZE lists"
        )
