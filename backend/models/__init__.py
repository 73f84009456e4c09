"""
Package initialization file for backend models.

Re-exports all Pydantic schemas and enumerations so other backend modules can
import data models from backend.models directly:

    from backend.models import (
        FunnelStageKey,
        ProspectPipelineSnapshot,
        FunnelSnapshot,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from backend.models.enums import (
    FunnelStageKey,
    DataAvailabilityStatus,
    FetchState,
    DataLevel,
    DataSourceMode,
    SnapshotChannel,
)


# =============================================================================
# Schemas
# =============================================================================

from backend.models.schemas import (
    # Upstream snapshots
    ProspectPipelineSnapshot,
    CampaignStatisticsSnapshot,
    CampaignStatisticsResult,
    # Integration configuration
    AccountRef,
    CampaignRef,
    IntegrationConfiguration,
    ActiveSelection,
    # Funnel output
    FunnelStage,
    PipelineMetrics,
    FunnelSnapshot,
    InsightBundle,
    StageDetail,
    # Orchestrator output / API responses
    ChannelFreshness,
    PipelineView,
    PipelineStatusResponse,
    RefreshResponse,
)


__all__ = [
    # Enums
    'FunnelStageKey',
    'DataAvailabilityStatus',
    'FetchState',
    'DataLevel',
    'DataSourceMode',
    'SnapshotChannel',
    # Upstream snapshots
    'ProspectPipelineSnapshot',
    'CampaignStatisticsSnapshot',
    'CampaignStatisticsResult',
    # Integration configuration
    'AccountRef',
    'CampaignRef',
    'IntegrationConfiguration',
    'ActiveSelection',
    # Funnel output
    'FunnelStage',
    'PipelineMetrics',
    'FunnelSnapshot',
    'InsightBundle',
    'StageDetail',
    # Orchestrator output / API responses
    'ChannelFreshness',
    'PipelineView',
    'PipelineStatusResponse',
    'RefreshResponse',
]
