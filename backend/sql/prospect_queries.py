"""
Prospect Queries Module for the pipeline analytics backend.

Provides the parameterized PostgreSQL query that summarizes the dashboard's
`prospects` table into the counters of the prospect pipeline snapshot.

The query counts, in one pass:
- every prospect (uploaded)
- prospects by research status: completed / processing / failed
- prospects carrying a sent_to_replyio_campaign_id (pushed to a campaign)

Column aliases are chosen to match the prospect field-resolution table in
backend.services.field_resolution, so a fetched row can be normalized
exactly like a REST payload.
"""

from typing import Optional


# =============================================================================
# CONSTANTS
# =============================================================================

PROSPECTS_TABLE: str = "prospects"

# Status values written by the research pipeline
STATUS_COMPLETED: str = "completed"
STATUS_PROCESSING: str = "processing"
STATUS_FAILED: str = "failed"


# =============================================================================
# PIPELINE SUMMARY QUERY
# =============================================================================

def get_prospect_pipeline_summary_query(user_id: Optional[str] = None) -> str:
    """
    Generate SQL query counting prospects per pipeline state.

    Args:
        user_id: When given, the query is scoped to that user's prospects and
            expects the id as the $1 parameter.

    Returns:
        Parameterized PostgreSQL query string returning a single row with
        total_prospects, completed, processing, failed, sent_to_campaign_count.
    """
    where_clause = "WHERE user_id = $1" if user_id is not None else ""

    return f"""
        SELECT
            COUNT(*) AS total_prospects,
            COUNT(*) FILTER (WHERE status = '{STATUS_COMPLETED}') AS completed,
            COUNT(*) FILTER (WHERE status = '{STATUS_PROCESSING}') AS processing,
            COUNT(*) FILTER (WHERE status = '{STATUS_FAILED}') AS failed,
            COUNT(sent_to_replyio_campaign_id) AS sent_to_campaign_count
        FROM {PROSPECTS_TABLE}
        {where_clause}
    """
