"""
SQL Query Module for the pipeline analytics backend.

Provides parameterized SQL queries for the read-only access the engine needs
to the dashboard database.

Submodules:
    prospect_queries: Prospect pipeline summary over the prospects table.

Example usage:
    from backend.sql import get_prospect_pipeline_summary_query

    sql = get_prospect_pipeline_summary_query(user_id="user-123")
"""

from backend.sql.prospect_queries import (
    get_prospect_pipeline_summary_query,
    PROSPECTS_TABLE,
    STATUS_COMPLETED,
    STATUS_PROCESSING,
    STATUS_FAILED,
)

__all__ = [
    'get_prospect_pipeline_summary_query',
    'PROSPECTS_TABLE',
    'STATUS_COMPLETED',
    'STATUS_PROCESSING',
    'STATUS_FAILED',
]
