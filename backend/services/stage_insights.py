"""
Stage Insight Generator Service

Rule-based insight and recommendation text for each funnel stage, derived
only from the funnel snapshot and the resolved selection. Fixed templates,
no randomness and no external calls: identical input always yields identical
text, so output can be compared against golden strings.

Per stage the generator emits 3-5 insights and exactly 3 recommendations,
plus the stage title and the metric breakdown the stage modal shows.

Template switches:
- sent: "Select a default campaign" replaces "Monitor campaign performance"
  when no campaign is selected or the integration is not configured; the
  configuration recommendation asks to connect an account when nothing is
  configured
- opened: the engagement note follows the data level when live and the
  availability status otherwise; the first recommendation asks to retry or
  configure when campaign data is not live
- uploaded / researched: recommendations follow the processing and failure
  counts
"""

from typing import Callable, Dict, List, Union

from backend.models import (
    ActiveSelection,
    DataAvailabilityStatus,
    DataLevel,
    FunnelSnapshot,
    FunnelStageKey,
    PipelineMetrics,
    StageDetail,
)
from backend.services.availability import describe_availability
from backend.services.funnel import STAGE_DEFINITIONS

MetricValue = Union[int, float, str]

NO_CAMPAIGN_SELECTED = "No campaign selected"
NO_ACCOUNT_SELECTED = "No account selected"

DATA_LEVEL_NOTES: Dict[DataLevel, str] = {
    DataLevel.CAMPAIGN_SPECIFIC: "Tracking engagement for selected campaign",
    DataLevel.AGGREGATED: "Tracking engagement aggregated across all campaigns",
    DataLevel.BASIC: "Tracking basic account-level engagement totals",
}


def format_number(value: Union[int, float]) -> str:
    """Render numbers the way the dashboard does: 45.0 -> '45', 33.33 -> '33.33'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _title(key: FunnelStageKey) -> str:
    for definition in STAGE_DEFINITIONS:
        if definition.key == key:
            return definition.label
    return key.value


# =============================================================================
# Per-Stage Builders
# =============================================================================


def _uploaded_stage(
    metrics: PipelineMetrics,
    selection: ActiveSelection,
    status: DataAvailabilityStatus,
) -> StageDetail:
    insights = [
        f"{metrics.totalUploaded} total prospects uploaded to the system",
        f"{metrics.researchCompleted} prospects completed research phase",
        f"{metrics.researchCompletionRate}% completion rate from upload to research",
        f"{metrics.processing} prospects currently being processed",
        f"{metrics.failed} prospects failed processing",
    ]

    if metrics.totalUploaded == 0:
        first = "Upload a prospect list to start the pipeline"
    else:
        first = "Monitor upload quality to maintain high completion rates"
    recommendations = [
        first,
        "Review failed prospects for common patterns",
        "Check processing queue if backlog exists",
    ]

    return StageDetail(
        stageKey=FunnelStageKey.UPLOADED,
        title=_title(FunnelStageKey.UPLOADED),
        metrics={
            "total": metrics.totalUploaded,
            "completed": metrics.researchCompleted,
            "processing": metrics.processing,
            "failed": metrics.failed,
            "completionRate": metrics.researchCompletionRate,
        },
        insights=insights,
        recommendations=recommendations,
    )


def _researched_stage(
    metrics: PipelineMetrics,
    selection: ActiveSelection,
    status: DataAvailabilityStatus,
) -> StageDetail:
    insights = [
        f"{metrics.researchCompleted} prospects have completed AI research",
        f"{metrics.researchCompletionRate}% of uploaded prospects completed research",
        f"{metrics.processing} prospects currently in research phase",
        f"{metrics.failed} prospects failed research processing",
    ]

    if metrics.processing > 0:
        timing = "Monitor processing times for optimization"
    else:
        timing = "Research queue is clear; upload more prospects to keep the pipeline moving"
    if metrics.failed > 0:
        failures = "Review failed prospects to improve success rate"
    else:
        failures = "Keep input data quality high to avoid research failures"
    recommendations = [
        "Ensure the research workflow webhook is properly configured",
        timing,
        failures,
    ]

    return StageDetail(
        stageKey=FunnelStageKey.RESEARCHED,
        title=_title(FunnelStageKey.RESEARCHED),
        metrics={
            "completed": metrics.researchCompleted,
            "total": metrics.totalUploaded,
            "completionRate": metrics.researchCompletionRate,
            "processing": metrics.processing,
            "failed": metrics.failed,
        },
        insights=insights,
        recommendations=recommendations,
    )


def _sent_stage(
    metrics: PipelineMetrics,
    selection: ActiveSelection,
    status: DataAvailabilityStatus,
) -> StageDetail:
    campaign = selection.campaign
    account = selection.account

    insights = [
        f"{metrics.sentToOutreach} prospects sent to email campaigns",
        f"{metrics.sentToOutreachRate}% of research-completed prospects sent to outreach",
        f"Campaign: {campaign.name}" if campaign else "No default campaign selected",
        f"Account: {account.name}" if account else "No campaign account configured",
        "Count includes only prospects from your uploaded list",
    ]

    if status == DataAvailabilityStatus.NOT_CONFIGURED:
        integration = "Connect an email-campaign account in settings"
    else:
        integration = "Ensure the campaign integration is properly configured"
    if campaign is not None and status != DataAvailabilityStatus.NOT_CONFIGURED:
        campaign_advice = "Monitor campaign performance regularly"
    else:
        campaign_advice = "Select a default campaign in campaign settings"
    recommendations = [
        integration,
        campaign_advice,
        "Send rate is based on your uploaded prospects only",
    ]

    return StageDetail(
        stageKey=FunnelStageKey.SENT,
        title=_title(FunnelStageKey.SENT),
        metrics={
            "sent": metrics.sentToOutreach,
            "fromResearch": metrics.researchCompleted,
            "sendRate": metrics.sentToOutreachRate,
            "selectedCampaign": campaign.name if campaign else NO_CAMPAIGN_SELECTED,
            "selectedAccount": account.name if account else NO_ACCOUNT_SELECTED,
        },
        insights=insights,
        recommendations=recommendations,
    )


def _opened_stage(
    metrics: PipelineMetrics,
    selection: ActiveSelection,
    status: DataAvailabilityStatus,
) -> StageDetail:
    if status == DataAvailabilityStatus.LIVE:
        note = DATA_LEVEL_NOTES[metrics.dataLevel]
    else:
        note = describe_availability(status)

    insights = [
        f"{metrics.emailsOpened} emails opened by prospects",
        f"{format_number(metrics.openRate)}% overall open rate",
        f"{metrics.clickToOpenRate}% click-to-open rate",
        note,
    ]

    if status == DataAvailabilityStatus.RATE_LIMITED:
        first = "Refresh campaign statistics once the rate limit clears"
    elif status == DataAvailabilityStatus.NOT_CONFIGURED:
        first = "Connect an email-campaign account to track engagement"
    else:
        first = "Optimize email content for higher engagement"
    recommendations = [
        first,
        "Test different call-to-action placements",
        "Monitor click patterns for insights",
    ]

    return StageDetail(
        stageKey=FunnelStageKey.OPENED,
        title=_title(FunnelStageKey.OPENED),
        metrics={
            "opened": metrics.emailsOpened,
            "clicked": metrics.emailsClicked,
            "sent": metrics.sentToOutreach,
            "openRate": metrics.openRate,
            "clickRate": metrics.clickRate,
            "clickToOpenRate": metrics.clickToOpenRate,
        },
        insights=insights,
        recommendations=recommendations,
    )


def _replied_stage(
    metrics: PipelineMetrics,
    selection: ActiveSelection,
    status: DataAvailabilityStatus,
) -> StageDetail:
    insights = [
        f"{metrics.emailsReplied} responses received from prospects",
        f"{format_number(metrics.replyRate)}% overall reply rate",
        f"{format_number(metrics.endToEndConversionRate)}% end-to-end conversion rate",
    ]

    if metrics.emailsReplied > 0:
        first = "Follow up on responses promptly"
    else:
        first = "Review messaging and targeting to earn first responses"
    recommendations = [
        first,
        "Analyze response content for insights",
        "Use response data to improve future campaigns",
    ]

    return StageDetail(
        stageKey=FunnelStageKey.REPLIED,
        title=_title(FunnelStageKey.REPLIED),
        metrics={
            "responses": metrics.emailsReplied,
            "sent": metrics.sentToOutreach,
            "replyRate": metrics.replyRate,
            "overallConversion": metrics.endToEndConversionRate,
        },
        insights=insights,
        recommendations=recommendations,
    )


StageBuilder = Callable[[PipelineMetrics, ActiveSelection, DataAvailabilityStatus], StageDetail]

STAGE_BUILDERS: Dict[FunnelStageKey, StageBuilder] = {
    FunnelStageKey.UPLOADED: _uploaded_stage,
    FunnelStageKey.RESEARCHED: _researched_stage,
    FunnelStageKey.SENT: _sent_stage,
    FunnelStageKey.OPENED: _opened_stage,
    FunnelStageKey.REPLIED: _replied_stage,
}


# =============================================================================
# Public API
# =============================================================================


def generate_stage_insights(
    funnel: FunnelSnapshot,
    selection: ActiveSelection,
    stage_key: FunnelStageKey,
) -> StageDetail:
    """
    Build the detail bundle for one stage.

    Args:
        funnel: Funnel snapshot (carries metrics and availability status)
        selection: Resolved active account/campaign, used for phrasing
        stage_key: Stage to describe

    Returns:
        StageDetail with title, metrics, insights and recommendations
    """
    builder = STAGE_BUILDERS[stage_key]
    return builder(funnel.metrics, selection, funnel.status)


def generate_all_stage_insights(
    funnel: FunnelSnapshot,
    selection: ActiveSelection,
) -> List[StageDetail]:
    """Detail bundles for all five stages, in funnel order."""
    return [
        generate_stage_insights(funnel, selection, stage.key)
        for stage in funnel.stages
    ]
