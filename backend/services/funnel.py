"""
Funnel Aggregator Service

Combines the internal prospect pipeline snapshot and the external campaign
statistics snapshot into a five-stage conversion funnel with derived rates.

Stages, in fixed order, and where each value / percentage comes from:

| Stage      | value                 | percentOfPrevious                          |
|------------|-----------------------|--------------------------------------------|
| uploaded   | totalUploaded         | 100 (0 when nothing uploaded)              |
| researched | completed             | researchCompletionRate (of uploaded)       |
| sent       | sentToCampaignCount   | sentRate (of completed)                    |
| opened     | emailsOpened          | overallOpenRate as supplied by the service |
| replied    | emailsReplied         | overallReplyRate as supplied by the service|

Stage values are raw counters and are never re-derived from one another. The
opened/replied percentages are the service-supplied rates, not local ratios,
because the service's denominator may include contacts outside the uploaded
prospect set.

Derived rates (division by zero yields 0, never NaN/inf/exception):
- researchCompletionRate = round(completed / totalUploaded * 100)
- sentRate = round(sentToCampaignCount / completed * 100), guarded by
  completed > 0 AND sentToCampaignCount > 0
- endToEndConversionRate = round(emailsReplied / totalUploaded * 100, 2),
  guarded by totalUploaded > 0 AND emailsReplied > 0
- clickToOpenRate = round(emailsClicked / emailsOpened * 100)

Rounding is half-up (2.5 -> 3), matching the dashboard's Math.round, not
Python's round-half-to-even.

Campaign data is only used when the availability status is live; otherwise
a zero snapshot stands in. When the integration is not configured the sent
stage is zero as well, since no send can be attributed to an active campaign.

Every function here is pure and stateless, safe to call concurrently.
"""

import math
from typing import List, NamedTuple, Optional, Tuple, Union

from backend.models import (
    CampaignStatisticsSnapshot,
    DataAvailabilityStatus,
    FunnelSnapshot,
    FunnelStage,
    FunnelStageKey,
    PipelineMetrics,
    ProspectPipelineSnapshot,
)


# =============================================================================
# Stage Definitions
# =============================================================================


class StageDefinition(NamedTuple):
    key: FunnelStageKey
    label: str
    color: str


STAGE_DEFINITIONS: List[StageDefinition] = [
    StageDefinition(FunnelStageKey.UPLOADED, "Prospects Uploaded", "#8b5cf6"),
    StageDefinition(FunnelStageKey.RESEARCHED, "Research Completed", "#06b6d4"),
    StageDefinition(FunnelStageKey.SENT, "Sent to Outreach", "#10b981"),
    StageDefinition(FunnelStageKey.OPENED, "Emails Opened", "#f59e0b"),
    StageDefinition(FunnelStageKey.REPLIED, "Responses Received", "#ef4444"),
]

# Percentage shown on the first stage when anything was uploaded
BASELINE_PERCENTAGE: float = 100.0

ZERO_PROSPECTS = ProspectPipelineSnapshot()
ZERO_CAMPAIGN_STATISTICS = CampaignStatisticsSnapshot()


# =============================================================================
# Arithmetic Helpers
# =============================================================================


def round_half_up(value: float, digits: int = 0) -> Union[int, float]:
    """
    Round halves toward positive infinity, like JavaScript's Math.round.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        int when digits == 0, float otherwise
    """
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(numerator: int, denominator: int) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


# =============================================================================
# Derived Rates
# =============================================================================


def calculate_research_completion_rate(prospects: ProspectPipelineSnapshot) -> int:
    """Percentage of uploaded prospects whose research completed."""
    if prospects.totalUploaded > 0:
        return round_half_up(percentage(prospects.completed, prospects.totalUploaded))
    return 0


def calculate_sent_rate(prospects: ProspectPipelineSnapshot) -> int:
    """
    Percentage of research-completed prospects pushed to a campaign.

    The guard requires BOTH completed > 0 and sentToCampaignCount > 0. For
    in-range inputs this equals guarding on completed alone (a zero send
    count rounds to 0 either way); keep both conditions so the zero-send
    boundary stays explicit.
    """
    if prospects.completed > 0 and prospects.sentToCampaignCount > 0:
        return round_half_up(percentage(prospects.sentToCampaignCount, prospects.completed))
    return 0


def calculate_end_to_end_conversion_rate(
    prospects: ProspectPipelineSnapshot,
    statistics: CampaignStatisticsSnapshot,
) -> float:
    """Replies per uploaded prospect, as a percentage with two decimals."""
    if prospects.totalUploaded > 0 and statistics.emailsReplied > 0:
        return float(
            round_half_up(percentage(statistics.emailsReplied, prospects.totalUploaded), 2)
        )
    return 0.0


def calculate_click_to_open_rate(statistics: CampaignStatisticsSnapshot) -> int:
    """Percentage of opened emails that were also clicked."""
    if statistics.emailsOpened > 0:
        return round_half_up(percentage(statistics.emailsClicked, statistics.emailsOpened))
    return 0


# =============================================================================
# Input Gating
# =============================================================================


def effective_campaign_statistics(
    statistics: Optional[CampaignStatisticsSnapshot],
    status: DataAvailabilityStatus,
) -> CampaignStatisticsSnapshot:
    """Campaign numbers are only trusted when live; otherwise a zero snapshot."""
    if statistics is None or status != DataAvailabilityStatus.LIVE:
        return ZERO_CAMPAIGN_STATISTICS
    return statistics


def effective_prospects(
    prospects: Optional[ProspectPipelineSnapshot],
    status: DataAvailabilityStatus,
) -> ProspectPipelineSnapshot:
    """Default a missing snapshot to zeros; drop sends when nothing is configured."""
    if prospects is None:
        return ZERO_PROSPECTS
    if status == DataAvailabilityStatus.NOT_CONFIGURED and prospects.sentToCampaignCount:
        return prospects.model_copy(update={"sentToCampaignCount": 0})
    return prospects


# =============================================================================
# Funnel Assembly
# =============================================================================


def build_pipeline_metrics(
    prospects: Optional[ProspectPipelineSnapshot],
    statistics: Optional[CampaignStatisticsSnapshot],
    status: DataAvailabilityStatus,
) -> PipelineMetrics:
    """
    Compute every derived pipeline figure.

    Args:
        prospects: Prospect pipeline snapshot, None when not yet loaded
        statistics: Campaign statistics snapshot, None when unavailable
        status: Data availability classification

    Returns:
        PipelineMetrics
    """
    prospects = effective_prospects(prospects, status)
    campaign = effective_campaign_statistics(statistics, status)

    return PipelineMetrics(
        totalUploaded=prospects.totalUploaded,
        researchCompleted=prospects.completed,
        researchCompletionRate=calculate_research_completion_rate(prospects),
        processing=prospects.processing,
        failed=prospects.failed,
        sentToOutreach=prospects.sentToCampaignCount,
        sentToOutreachRate=calculate_sent_rate(prospects),
        emailsSent=campaign.emailsSent,
        emailsOpened=campaign.emailsOpened,
        emailsClicked=campaign.emailsClicked,
        emailsReplied=campaign.emailsReplied,
        openRate=campaign.overallOpenRate,
        clickRate=campaign.overallClickRate,
        replyRate=campaign.overallReplyRate,
        clickToOpenRate=calculate_click_to_open_rate(campaign),
        endToEndConversionRate=calculate_end_to_end_conversion_rate(prospects, campaign),
        dataLevel=campaign.dataLevel,
        hasLiveCampaignData=status == DataAvailabilityStatus.LIVE,
    )


def _stage_figures(metrics: PipelineMetrics, key: FunnelStageKey) -> Tuple[int, float]:
    """(value, percentOfPrevious) for one stage."""
    if key == FunnelStageKey.UPLOADED:
        baseline = BASELINE_PERCENTAGE if metrics.totalUploaded > 0 else 0.0
        return metrics.totalUploaded, baseline
    if key == FunnelStageKey.RESEARCHED:
        return metrics.researchCompleted, float(metrics.researchCompletionRate)
    if key == FunnelStageKey.SENT:
        return metrics.sentToOutreach, float(metrics.sentToOutreachRate)
    if key == FunnelStageKey.OPENED:
        return metrics.emailsOpened, metrics.openRate
    return metrics.emailsReplied, metrics.replyRate


def build_funnel_snapshot(
    prospects: Optional[ProspectPipelineSnapshot],
    statistics: Optional[CampaignStatisticsSnapshot],
    status: DataAvailabilityStatus,
) -> FunnelSnapshot:
    """
    Build the complete five-stage funnel.

    Always rebuilt from the inputs; identical inputs give identical output.

    Args:
        prospects: Prospect pipeline snapshot, None when not yet loaded
        statistics: Campaign statistics snapshot, None when unavailable
        status: Data availability classification

    Returns:
        FunnelSnapshot
    """
    metrics = build_pipeline_metrics(prospects, statistics, status)

    stages = []
    for definition in STAGE_DEFINITIONS:
        value, percent = _stage_figures(metrics, definition.key)
        stages.append(
            FunnelStage(
                key=definition.key,
                label=definition.label,
                value=value,
                percentOfPrevious=percent,
                color=definition.color,
            )
        )

    return FunnelSnapshot(
        stages=stages,
        endToEndConversionRate=metrics.endToEndConversionRate,
        status=status,
        metrics=metrics,
    )
