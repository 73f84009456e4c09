"""
Backend Services Module

Business logic for the prospect pipeline analytics engine. Everything except
the data sources and the orchestrator is a pure, stateless function.

Services:
- field_resolution: ingestion-boundary normalization of upstream payloads
- configuration: active account/campaign resolution
- availability: three-way campaign data availability classification
- funnel: five-stage funnel aggregation and derived rates
- stage_insights: rule-based per-stage insights and recommendations
- data_sources: live (database + REST API) and fixture snapshot sources
- orchestrator: snapshot holder, recompute trigger and background refresh

All services are consumed by the API layer (backend/api/).
"""

# =============================================================================
# Field Resolution Exports
# =============================================================================

from backend.services.field_resolution import (
    build_integration_configuration,
    coerce_count,
    coerce_rate,
    count_sent_to_campaign,
    normalize_accounts,
    normalize_campaign_statistics,
    normalize_campaigns,
    normalize_legacy_settings,
    normalize_prospect_summary,
    resolve_field,
)

# =============================================================================
# Configuration Resolver Exports
# =============================================================================

from backend.services.configuration import (
    build_legacy_campaign,
    is_integration_configured,
    pick_default,
    resolve_active_selection,
    resolve_from_configuration,
)

# =============================================================================
# Availability Classifier Exports
# =============================================================================

from backend.services.availability import (
    classify_data_availability,
    describe_availability,
)

# =============================================================================
# Funnel Aggregator Exports
# =============================================================================

from backend.services.funnel import (
    STAGE_DEFINITIONS,
    build_funnel_snapshot,
    build_pipeline_metrics,
    calculate_click_to_open_rate,
    calculate_end_to_end_conversion_rate,
    calculate_research_completion_rate,
    calculate_sent_rate,
    round_half_up,
)

# =============================================================================
# Stage Insight Generator Exports
# =============================================================================

from backend.services.stage_insights import (
    generate_all_stage_insights,
    generate_stage_insights,
)

# =============================================================================
# Data Source and Orchestrator Exports
# =============================================================================

from backend.services.data_sources import (
    DataSource,
    FixtureSource,
    LiveSource,
    create_data_source,
)
from backend.services.orchestrator import PipelineOrchestrator


__all__ = [
    # field_resolution
    "build_integration_configuration",
    "coerce_count",
    "coerce_rate",
    "count_sent_to_campaign",
    "normalize_accounts",
    "normalize_campaign_statistics",
    "normalize_campaigns",
    "normalize_legacy_settings",
    "normalize_prospect_summary",
    "resolve_field",
    # configuration
    "build_legacy_campaign",
    "is_integration_configured",
    "pick_default",
    "resolve_active_selection",
    "resolve_from_configuration",
    # availability
    "classify_data_availability",
    "describe_availability",
    # funnel
    "STAGE_DEFINITIONS",
    "build_funnel_snapshot",
    "build_pipeline_metrics",
    "calculate_click_to_open_rate",
    "calculate_end_to_end_conversion_rate",
    "calculate_research_completion_rate",
    "calculate_sent_rate",
    "round_half_up",
    # stage_insights
    "generate_all_stage_insights",
    "generate_stage_insights",
    # data_sources / orchestrator
    "DataSource",
    "FixtureSource",
    "LiveSource",
    "create_data_source",
    "PipelineOrchestrator",
]
