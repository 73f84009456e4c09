"""
Enumeration definitions for the pipeline funnel analytics backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and API responses.

Contents:
- FunnelStageKey: the five pipeline checkpoints, in funnel order
- DataAvailabilityStatus: trust classification of the external campaign data
- FetchState: tri-state outcome of the campaign-statistics fetch
- DataLevel: granularity of the campaign statistics, passed through unmodified
- DataSourceMode: which DataSource implementation is composed at startup
- SnapshotChannel: the three independently-updating upstream inputs
"""

from enum import Enum


class FunnelStageKey(str, Enum):
    """
    Pipeline checkpoints, declared in funnel order.

    - uploaded: prospects uploaded to the workspace
    - researched: prospects whose AI research completed
    - sent: prospects pushed to an email campaign
    - opened: campaign emails opened (external data)
    - replied: campaign replies received (external data)

    Iteration order of this enum IS the funnel order.
    """
    UPLOADED = "uploaded"
    RESEARCHED = "researched"
    SENT = "sent"
    OPENED = "opened"
    REPLIED = "replied"


class DataAvailabilityStatus(str, Enum):
    """
    Whether the external campaign data can be trusted.

    - live: statistics fetch succeeded
    - rate_limited: integration is configured but data is temporarily unavailable
    - not_configured: no account and no legacy key, nothing to fetch from
    """
    LIVE = "live"
    RATE_LIMITED = "rate_limited"
    NOT_CONFIGURED = "not_configured"


class FetchState(str, Enum):
    """Outcome of the most recently received campaign-statistics fetch."""
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


class DataLevel(str, Enum):
    """
    Granularity indicator supplied by the campaign statistics source.

    - campaign-specific: numbers cover the selected campaign only
    - aggregated: numbers are summed over every campaign of the account
    - basic: account-level totals without per-campaign breakdown
    """
    CAMPAIGN_SPECIFIC = "campaign-specific"
    AGGREGATED = "aggregated"
    BASIC = "basic"


class DataSourceMode(str, Enum):
    """
    DataSource implementation selected at composition time.

    - live: Postgres prospects table + dashboard REST API
    - fixture: fixed demo data, no network or database access
    """
    LIVE = "live"
    FIXTURE = "fixture"


class SnapshotChannel(str, Enum):
    """Upstream input channels; each one is last-write-wins."""
    PROSPECTS = "prospects"
    CAMPAIGN_STATISTICS = "campaign_statistics"
    CONFIGURATION = "configuration"
