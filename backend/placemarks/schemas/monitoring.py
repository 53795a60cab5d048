"""
Placemarks Backend: Monitoring Schemas
========================================

What:  Pydantic models for rows returned by the monitoring SQL functions and
       for the reports built from them.
How:   Row models mirror the column names of the SQL functions created in
       migration 001, so `Model.model_validate(dict(row))` works directly on
       `result.mappings()`.
Who:   MaintenanceService, IndexMonitor, and the monitoring routes.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Table Maintenance
# ══════════════════════════════════════════════════════════════════════════


class TableBloatInfo(BaseModel):
    """One row of check_table_bloat()."""
    table_name: str
    live_rows: int
    dead_rows: int
    dead_row_percentage: float
    total_size: str
    maintenance_status: str


class MaintenanceRecommendation(BaseModel):
    """One row of get_urgent_maintenance_tables()."""
    table_name: str
    dead_row_percentage: float
    recommended_action: str
    priority: Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]


class AutovacuumSetting(BaseModel):
    """One row of get_autovacuum_settings()."""
    setting_name: str
    current_value: str
    unit: Optional[str] = None
    description: Optional[str] = None


class HealthSummary(BaseModel):
    total_tables: int = 0
    critical_tables: int = 0
    high_priority_tables: int = 0
    medium_priority_tables: int = 0


class DatabaseHealthReport(BaseModel):
    """
    What:  Aggregate table-maintenance health.
    How:   healthy is True iff no table has a CRITICAL recommendation.
           urgent_tables holds CRITICAL rows, warning_tables HIGH and MEDIUM.
    """
    healthy: bool
    timestamp: datetime
    urgent_tables: List[MaintenanceRecommendation] = Field(default_factory=list)
    warning_tables: List[MaintenanceRecommendation] = Field(default_factory=list)
    all_tables: List[TableBloatInfo] = Field(default_factory=list)
    summary: HealthSummary = Field(default_factory=HealthSummary)


# ══════════════════════════════════════════════════════════════════════════
# Index Monitoring
# ══════════════════════════════════════════════════════════════════════════


class IndexUsageAnalysis(BaseModel):
    """One row of analyze_index_usage()."""
    table_name: str
    index_name: str
    index_size: str
    usage_category: str
    scan_count: int
    tuples_read: int
    tuples_fetched: int
    avg_tuples_per_scan: float
    efficiency_ratio: float
    recommendation: str
    priority: str


class UnusedIndex(BaseModel):
    """One row of get_unused_indexes()."""
    table_name: str
    index_name: str
    index_size: str
    index_definition: str
    space_wasted: str
    drop_command: str


class MissingIndexSuggestion(BaseModel):
    """One row of suggest_missing_indexes()."""
    table_name: str
    suggested_columns: str
    reason: str
    create_command: str
    priority: str


class IndexSizeSummary(BaseModel):
    """One row of get_index_size_summary()."""
    table_name: str
    total_indexes: int
    total_index_size: str
    unused_indexes: int
    unused_index_size: str
    efficiency_score: float


class IndexMonitoringSummary(BaseModel):
    total_indexes: int
    unused_indexes: int
    total_size: str
    wasted_space: str
    overall_efficiency: int = Field(description="Percent of indexes that are used (0-100)")


class IndexMonitoringReport(BaseModel):
    summary: IndexMonitoringSummary
    high_priority_issues: List[IndexUsageAnalysis]
    unused_indexes: List[UnusedIndex]
    missing_indexes: List[MissingIndexSuggestion]
    size_summary: List[IndexSizeSummary]
    recommendations: List[str]


class IndexHealthCheck(BaseModel):
    healthy: bool
    issues: List[str]
    recommendations: List[str]


class IndexOptimizationSuggestion(BaseModel):
    type: Literal["drop", "create", "modify", "monitor"]
    table_name: str
    index_name: Optional[str] = None
    reason: str
    impact: str
    sql_command: str
    estimated_benefit: str
    risk_level: Literal["low", "medium", "high"]


# ══════════════════════════════════════════════════════════════════════════
# Route Envelopes
# ══════════════════════════════════════════════════════════════════════════


class MaintenanceReportResponse(BaseModel):
    """Returned by POST /api/maintenance/report."""
    success: bool = True
    report: str = Field(description="Markdown maintenance report")
    timestamp: str = Field(description="When the response was built (UTC ISO 8601)")


class DatabaseHealthDetails(BaseModel):
    urgentTables: int = 0
    warningTables: int = 0
    totalTables: int = 0
    criticalTables: int = 0
    highPriorityTables: int = 0
    mediumPriorityTables: int = 0
    recommendations: List[str] = Field(default_factory=list)


class DatabaseHealthTable(BaseModel):
    name: str
    liveRows: int
    deadRows: int
    deadRowPercentage: float
    size: str
    status: str


class DatabaseHealthResponse(BaseModel):
    """
    Returned by GET /api/health/database.

    Field names are camelCase because the admin dashboard reads them as-is.
    """
    status: Literal["healthy", "degraded", "error"]
    timestamp: str
    details: DatabaseHealthDetails
    tables: List[DatabaseHealthTable] = Field(default_factory=list)
    error: Optional[str] = None
