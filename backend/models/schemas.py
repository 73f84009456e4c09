"""
Pydantic models for the pipeline funnel analytics backend.

This module defines every data contract the engine consumes or produces:
- Upstream snapshots: prospect pipeline counts, campaign statistics, and the
  account/campaign configuration of the email-campaign integration
- Resolution output: the active account/campaign selection
- Funnel output: five funnel stages, derived pipeline metrics, per-stage detail
- Orchestrator output: the published pipeline view with per-channel freshness

Field names are camelCase so the models serialize to the same JSON shape the
dashboard frontend already reads. Snapshots and outputs are frozen: a new
instance is built on every recompute instead of mutating an old one.

All models use Pydantic v2 syntax.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from backend.models.enums import (
    DataAvailabilityStatus,
    DataLevel,
    FetchState,
    FunnelStageKey,
    SnapshotChannel,
)


# =============================================================================
# Upstream Snapshots
# =============================================================================


class ProspectPipelineSnapshot(BaseModel):
    """
    Internal prospect-processing counters.

    completed + processing + failed need not add up to totalUploaded, since
    prospects may sit in states that are not counted here. sentToCampaignCount
    is expected to be <= completed but upstream data can violate that, so it
    is not enforced.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "totalUploaded": 100,
                "completed": 80,
                "processing": 15,
                "failed": 5,
                "sentToCampaignCount": 40,
            }
        },
    )

    totalUploaded: int = Field(default=0, ge=0, description="Prospects uploaded")
    completed: int = Field(default=0, ge=0, description="Prospects with completed research")
    processing: int = Field(default=0, ge=0, description="Prospects currently in research")
    failed: int = Field(default=0, ge=0, description="Prospects whose research failed")
    sentToCampaignCount: int = Field(
        default=0,
        ge=0,
        description="Prospects carrying a non-null sent-to-campaign id",
    )


class CampaignStatisticsSnapshot(BaseModel):
    """
    Engagement statistics reported by the external email-campaign service.

    The overall* rates are supplied by the service and are NOT recomputed
    from the counts; the two can disagree because the service's denominator
    may include contacts outside the uploaded prospect set.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "emailsSent": 400,
                "emailsOpened": 180,
                "emailsClicked": 36,
                "emailsReplied": 8,
                "overallOpenRate": 45.0,
                "overallClickRate": 9.0,
                "overallReplyRate": 2.0,
                "dataLevel": "campaign-specific",
            }
        },
    )

    emailsSent: int = Field(default=0, ge=0)
    emailsOpened: int = Field(default=0, ge=0)
    emailsClicked: int = Field(default=0, ge=0)
    emailsReplied: int = Field(default=0, ge=0)
    overallOpenRate: float = Field(default=0.0, ge=0.0, le=100.0)
    overallClickRate: float = Field(default=0.0, ge=0.0, le=100.0)
    overallReplyRate: float = Field(default=0.0, ge=0.0, le=100.0)
    dataLevel: DataLevel = Field(
        default=DataLevel.CAMPAIGN_SPECIFIC,
        description="Granularity of the numbers, passed through unmodified",
    )


class CampaignStatisticsResult(BaseModel):
    """
    Outcome of one campaign-statistics fetch.

    statistics is only populated when state is success.
    """
    model_config = ConfigDict(frozen=True)

    state: FetchState = Field(default=FetchState.PENDING)
    statistics: Optional[CampaignStatisticsSnapshot] = None
    message: Optional[str] = Field(
        default=None,
        description="Upstream error or note, kept for logging and status display",
    )


# =============================================================================
# Integration Configuration
# =============================================================================


class AccountRef(BaseModel):
    """An email-campaign account configured in the workspace."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    isDefault: bool = False


class CampaignRef(BaseModel):
    """A campaign belonging to exactly one account."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    externalCampaignId: Optional[str] = Field(
        default=None,
        description="Campaign id inside the external service",
    )
    name: str = ""
    isDefault: bool = False
    accountId: Optional[str] = None


class IntegrationConfiguration(BaseModel):
    """
    Everything the resolver needs to pick the active account and campaign.

    campaigns is already scoped to the account the data source considered
    active when it fetched them (or empty). The legacy fields describe the
    single-key setup that predates multi-account support.
    """
    model_config = ConfigDict(frozen=True)

    accounts: List[AccountRef] = Field(default_factory=list)
    campaigns: List[CampaignRef] = Field(default_factory=list)
    hasLegacyApiKey: bool = False
    legacyCampaignId: Optional[str] = None


class ActiveSelection(BaseModel):
    """
    The account and campaign the funnel reports on.

    Built fresh on every resolution and never persisted; persisting default
    flags belongs to the settings screens of the dashboard.
    """
    model_config = ConfigDict(frozen=True)

    account: Optional[AccountRef] = None
    campaign: Optional[CampaignRef] = None


# =============================================================================
# Funnel Output
# =============================================================================


class FunnelStage(BaseModel):
    """One checkpoint of the conversion funnel."""
    model_config = ConfigDict(frozen=True)

    key: FunnelStageKey
    label: str
    value: int = Field(..., ge=0)
    percentOfPrevious: float = Field(
        ...,
        ge=0.0,
        description="Stage-specific conversion percentage (see funnel service)",
    )
    color: str


class PipelineMetrics(BaseModel):
    """Every figure derived while building the funnel."""
    model_config = ConfigDict(frozen=True)

    totalUploaded: int = 0
    researchCompleted: int = 0
    researchCompletionRate: int = 0
    processing: int = 0
    failed: int = 0
    sentToOutreach: int = 0
    sentToOutreachRate: int = 0
    emailsSent: int = 0
    emailsOpened: int = 0
    emailsClicked: int = 0
    emailsReplied: int = 0
    openRate: float = 0.0
    clickRate: float = 0.0
    replyRate: float = 0.0
    clickToOpenRate: int = 0
    endToEndConversionRate: float = 0.0
    dataLevel: DataLevel = DataLevel.CAMPAIGN_SPECIFIC
    hasLiveCampaignData: bool = False


class FunnelSnapshot(BaseModel):
    """Five funnel stages in fixed order plus the end-to-end conversion rate."""
    model_config = ConfigDict(frozen=True)

    stages: List[FunnelStage]
    endToEndConversionRate: float = 0.0
    status: DataAvailabilityStatus
    metrics: PipelineMetrics

    def stage(self, key: FunnelStageKey) -> FunnelStage:
        """Return the stage with the given key."""
        for stage in self.stages:
            if stage.key == key:
                return stage
        raise KeyError(key)


class InsightBundle(BaseModel):
    """Insight and recommendation text for one stage."""
    model_config = ConfigDict(frozen=True)

    stageKey: FunnelStageKey
    insights: List[str]
    recommendations: List[str]


class StageDetail(InsightBundle):
    """InsightBundle plus the title and metric breakdown shown in the stage modal."""

    title: str
    metrics: Dict[str, Union[int, float, str]] = Field(default_factory=dict)


# =============================================================================
# Orchestrator Output / API Responses
# =============================================================================


class ChannelFreshness(BaseModel):
    """When a channel last delivered a snapshot and whether it is due a refresh."""
    model_config = ConfigDict(frozen=True)

    channel: SnapshotChannel
    receivedAt: Optional[datetime] = None
    isStale: bool = True


class PipelineView(BaseModel):
    """Everything the presentation layer needs, rebuilt on every recompute."""
    model_config = ConfigDict(frozen=True)

    funnel: FunnelSnapshot
    stages: List[StageDetail]
    status: DataAvailabilityStatus
    selection: ActiveSelection
    fetchState: FetchState
    dataLevel: DataLevel
    computedAt: datetime
    freshness: List[ChannelFreshness] = Field(default_factory=list)


class PipelineStatusResponse(BaseModel):
    """Status badge payload."""

    status: DataAvailabilityStatus
    selection: ActiveSelection
    fetchState: FetchState
    dataLevel: DataLevel


class RefreshResponse(BaseModel):
    """Acknowledgement for a scheduled campaign-statistics refresh."""

    scheduled: bool
    message: str
