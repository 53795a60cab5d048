"""Create monitoring schema

Revision ID: 001
Revises: None
Create Date: 2025-06-12 00:00:00.000000+00:00

What:  Creates the maintenance_log and index_usage_snapshots tables and the
       read-only SQL functions the monitoring services call:

           check_table_bloat()              dead-row ratio per table
           get_urgent_maintenance_tables()  VACUUM recommendation + priority
           get_autovacuum_settings()        current autovacuum GUCs
           analyze_index_usage()            scan stats and a usage category
           get_unused_indexes()             never-scanned, droppable indexes
           suggest_missing_indexes()        foreign keys without an index
           get_index_size_summary()         per-table index totals

How:   Functions read pg_stat_user_tables / pg_stat_user_indexes for the
       public schema only. Column names match placemarks/schemas/monitoring.py.

Rollback: downgrade() drops the functions and both tables (log data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ── Table maintenance functions ───────────────────────────────────────────

CHECK_TABLE_BLOAT = """
CREATE OR REPLACE FUNCTION check_table_bloat()
RETURNS TABLE (
    table_name text,
    live_rows bigint,
    dead_rows bigint,
    dead_row_percentage numeric,
    total_size text,
    maintenance_status text
)
LANGUAGE sql STABLE AS $$
    SELECT
        s.relname::text,
        s.n_live_tup,
        s.n_dead_tup,
        ROUND(
            CASE WHEN s.n_live_tup + s.n_dead_tup = 0 THEN 0
                 ELSE s.n_dead_tup::numeric * 100 / (s.n_live_tup + s.n_dead_tup)
            END, 2),
        pg_size_pretty(pg_total_relation_size(s.relid)),
        CASE
            WHEN s.n_dead_tup > 1000 AND s.n_dead_tup::numeric * 100
                 / NULLIF(s.n_live_tup + s.n_dead_tup, 0) > 20 THEN 'CRITICAL'
            WHEN s.n_dead_tup::numeric * 100
                 / NULLIF(s.n_live_tup + s.n_dead_tup, 0) > 10 THEN 'NEEDS_VACUUM'
            ELSE 'OK'
        END
    FROM pg_stat_user_tables s
    WHERE s.schemaname = 'public'
    ORDER BY s.n_dead_tup DESC;
$$;
"""

GET_URGENT_MAINTENANCE_TABLES = """
CREATE OR REPLACE FUNCTION get_urgent_maintenance_tables()
RETURNS TABLE (
    table_name text,
    dead_row_percentage numeric,
    recommended_action text,
    priority text
)
LANGUAGE sql STABLE AS $$
    SELECT
        b.table_name,
        b.dead_row_percentage,
        CASE
            WHEN b.dead_row_percentage > 20 THEN 'VACUUM FULL ANALYZE ' || b.table_name
            ELSE 'VACUUM ANALYZE ' || b.table_name
        END,
        CASE
            WHEN b.dead_row_percentage > 20 AND b.dead_rows > 1000 THEN 'CRITICAL'
            WHEN b.dead_row_percentage > 15 THEN 'HIGH'
            WHEN b.dead_row_percentage > 10 THEN 'MEDIUM'
            ELSE 'LOW'
        END
    FROM check_table_bloat() b
    WHERE b.dead_row_percentage > 5
    ORDER BY b.dead_row_percentage DESC;
$$;
"""

GET_AUTOVACUUM_SETTINGS = """
CREATE OR REPLACE FUNCTION get_autovacuum_settings()
RETURNS TABLE (
    setting_name text,
    current_value text,
    unit text,
    description text
)
LANGUAGE sql STABLE AS $$
    SELECT name::text, setting::text, unit::text, short_desc::text
    FROM pg_settings
    WHERE name LIKE 'autovacuum%'
    ORDER BY name;
$$;
"""

# ── Index monitoring functions ────────────────────────────────────────────

ANALYZE_INDEX_USAGE = """
CREATE OR REPLACE FUNCTION analyze_index_usage()
RETURNS TABLE (
    table_name text,
    index_name text,
    index_size text,
    usage_category text,
    scan_count bigint,
    tuples_read bigint,
    tuples_fetched bigint,
    avg_tuples_per_scan numeric,
    efficiency_ratio numeric,
    recommendation text,
    priority text
)
LANGUAGE sql STABLE AS $$
    SELECT
        s.relname::text,
        s.indexrelname::text,
        pg_size_pretty(pg_relation_size(s.indexrelid)),
        CASE
            WHEN s.idx_scan = 0 THEN 'UNUSED'
            WHEN s.idx_scan < 50 THEN 'LOW_USAGE'
            WHEN s.idx_scan < 1000 THEN 'MODERATE_USAGE'
            ELSE 'HIGH_USAGE'
        END,
        s.idx_scan,
        s.idx_tup_read,
        s.idx_tup_fetch,
        ROUND(CASE WHEN s.idx_scan = 0 THEN 0
                   ELSE s.idx_tup_read::numeric / s.idx_scan END, 2),
        ROUND(CASE WHEN s.idx_tup_read = 0 THEN 0
                   ELSE s.idx_tup_fetch::numeric * 100 / s.idx_tup_read END, 2),
        CASE
            WHEN i.indisprimary OR i.indisunique THEN 'Keep: enforces a constraint'
            WHEN s.idx_scan = 0 THEN 'Consider dropping: never used'
            WHEN s.idx_scan < 50 THEN 'Monitor: rarely used'
            ELSE 'Keep: actively used'
        END,
        CASE
            WHEN i.indisprimary OR i.indisunique THEN 'LOW'
            WHEN s.idx_scan = 0 AND pg_relation_size(s.indexrelid) > 10485760 THEN 'HIGH'
            WHEN s.idx_scan = 0 THEN 'MEDIUM'
            WHEN s.idx_scan < 50 THEN 'MEDIUM'
            ELSE 'LOW'
        END
    FROM pg_stat_user_indexes s
    JOIN pg_index i ON i.indexrelid = s.indexrelid
    WHERE s.schemaname = 'public'
    ORDER BY s.idx_scan ASC, pg_relation_size(s.indexrelid) DESC;
$$;
"""

GET_UNUSED_INDEXES = """
CREATE OR REPLACE FUNCTION get_unused_indexes()
RETURNS TABLE (
    table_name text,
    index_name text,
    index_size text,
    index_definition text,
    space_wasted text,
    drop_command text
)
LANGUAGE sql STABLE AS $$
    SELECT
        s.relname::text,
        s.indexrelname::text,
        pg_size_pretty(pg_relation_size(s.indexrelid)),
        pg_get_indexdef(s.indexrelid),
        CASE
            WHEN pg_relation_size(s.indexrelid) > 10485760 THEN 'HIGH'
            WHEN pg_relation_size(s.indexrelid) > 1048576 THEN 'MEDIUM'
            ELSE 'LOW'
        END,
        'DROP INDEX CONCURRENTLY IF EXISTS ' || quote_ident(s.indexrelname) || ';'
    FROM pg_stat_user_indexes s
    JOIN pg_index i ON i.indexrelid = s.indexrelid
    WHERE s.schemaname = 'public'
      AND s.idx_scan = 0
      AND NOT i.indisprimary
      AND NOT i.indisunique
    ORDER BY pg_relation_size(s.indexrelid) DESC;
$$;
"""

SUGGEST_MISSING_INDEXES = """
CREATE OR REPLACE FUNCTION suggest_missing_indexes()
RETURNS TABLE (
    table_name text,
    suggested_columns text,
    reason text,
    create_command text,
    priority text
)
LANGUAGE sql STABLE AS $$
    SELECT
        c.conrelid::regclass::text,
        a.attname::text,
        'Foreign key column without an index',
        'CREATE INDEX CONCURRENTLY idx_' || t.relname || '_' || a.attname
            || ' ON ' || c.conrelid::regclass::text || ' (' || quote_ident(a.attname) || ');',
        CASE WHEN COALESCE(st.seq_scan, 0) > COALESCE(st.idx_scan, 0) THEN 'HIGH'
             ELSE 'MEDIUM'
        END
    FROM pg_constraint c
    JOIN pg_class t ON t.oid = c.conrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = c.conkey[1]
    LEFT JOIN pg_stat_user_tables st ON st.relid = c.conrelid
    WHERE c.contype = 'f'
      AND n.nspname = 'public'
      AND NOT EXISTS (
          SELECT 1 FROM pg_index i
          WHERE i.indrelid = c.conrelid AND i.indkey[0] = c.conkey[1]
      )
    ORDER BY 1, 2;
$$;
"""

GET_INDEX_SIZE_SUMMARY = """
CREATE OR REPLACE FUNCTION get_index_size_summary()
RETURNS TABLE (
    table_name text,
    total_indexes integer,
    total_index_size text,
    unused_indexes integer,
    unused_index_size text,
    efficiency_score numeric
)
LANGUAGE sql STABLE AS $$
    SELECT
        s.relname::text,
        COUNT(*)::integer,
        pg_size_pretty(SUM(pg_relation_size(s.indexrelid))::bigint),
        COUNT(*) FILTER (WHERE s.idx_scan = 0)::integer,
        pg_size_pretty(COALESCE(
            SUM(pg_relation_size(s.indexrelid)) FILTER (WHERE s.idx_scan = 0), 0)::bigint),
        ROUND((COUNT(*) - COUNT(*) FILTER (WHERE s.idx_scan = 0))::numeric * 100
              / COUNT(*), 2)
    FROM pg_stat_user_indexes s
    WHERE s.schemaname = 'public'
    GROUP BY s.relname
    ORDER BY SUM(pg_relation_size(s.indexrelid)) DESC;
$$;
"""

FUNCTIONS = [
    ("check_table_bloat", CHECK_TABLE_BLOAT),
    ("get_urgent_maintenance_tables", GET_URGENT_MAINTENANCE_TABLES),
    ("get_autovacuum_settings", GET_AUTOVACUUM_SETTINGS),
    ("analyze_index_usage", ANALYZE_INDEX_USAGE),
    ("get_unused_indexes", GET_UNUSED_INDEXES),
    ("suggest_missing_indexes", SUGGEST_MISSING_INDEXES),
    ("get_index_size_summary", GET_INDEX_SIZE_SUMMARY),
]


def upgrade() -> None:
    op.create_table(
        "maintenance_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("operation_type", sa.String(64), nullable=False,
                  comment="URGENT_ALERT, WARNING_ALERT, INDEX_HEALTH_ALERT, VACUUM, ..."),
        sa.Column("table_name", sa.String(255), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("dead_rows_before", sa.BigInteger(), nullable=True),
        sa.Column("dead_rows_after", sa.BigInteger(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False,
                  server_default=sa.text("'completed'")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.PrimaryKeyConstraint("id", name="pk_maintenance_log"),
    )
    op.create_index(
        "idx_maintenance_log_created_at",
        "maintenance_log",
        [sa.text("created_at DESC")],
    )

    op.create_table(
        "index_usage_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("table_name", sa.String(255), nullable=False),
        sa.Column("index_name", sa.String(255), nullable=False),
        sa.Column("index_size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("scan_count", sa.BigInteger(), nullable=False),
        sa.Column("tuples_read", sa.BigInteger(), nullable=False),
        sa.Column("tuples_fetched", sa.BigInteger(), nullable=False),
        sa.Column("recorded_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("NOW()")),
        sa.PrimaryKeyConstraint("id", name="pk_index_usage_snapshots"),
    )
    op.create_index(
        "idx_index_usage_snapshots_index_time",
        "index_usage_snapshots",
        ["index_name", "recorded_at"],
    )

    # Order matters: get_urgent_maintenance_tables reads check_table_bloat
    for _, ddl in FUNCTIONS:
        op.execute(ddl)


def downgrade() -> None:
    for name, _ in reversed(FUNCTIONS):
        op.execute(f"DROP FUNCTION IF EXISTS {name}()")

    op.drop_index("idx_index_usage_snapshots_index_time", table_name="index_usage_snapshots")
    op.drop_table("index_usage_snapshots")
    op.drop_index("idx_maintenance_log_created_at", table_name="maintenance_log")
    op.drop_table("maintenance_log")
