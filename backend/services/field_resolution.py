"""
Field Resolution Service - Ingestion Boundary Normalization

Upstream payloads spell the same value several ways: the dashboard REST API
uses camelCase (`totalProspects`), the database uses snake_case
(`total_prospects`), and older campaign-service responses use their own names
(`opens`, `deliveries`). Each logical attribute therefore has an explicit,
ordered resolution table; the first candidate key present with a non-null
value wins. Resolution happens once, here, and the rest of the engine only
ever sees validated snapshot models.

Normalization rules:
- Counters: missing, null, boolean, non-numeric, NaN or negative -> 0
- Rates: same as counters, then clamped into [0, 100]
- Ids: null or empty -> None, anything else -> str
- Accounts/campaigns without a resolvable id are dropped
- Nothing in this module raises on bad upstream data
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from backend.models import (
    AccountRef,
    CampaignRef,
    CampaignStatisticsResult,
    CampaignStatisticsSnapshot,
    DataLevel,
    FetchState,
    IntegrationConfiguration,
    ProspectPipelineSnapshot,
)

logger = logging.getLogger(__name__)

FieldTable = Dict[str, Tuple[str, ...]]


# =============================================================================
# Resolution Tables
# Candidate keys are tried in order; first non-null value wins.
# =============================================================================

PROSPECT_SUMMARY_FIELDS: FieldTable = {
    "totalUploaded": ("totalProspects", "total_prospects", "totalUploaded", "total"),
    "completed": ("completed", "completedCount", "completed_count"),
    "processing": ("processing", "processingCount", "processing_count"),
    "failed": ("failed", "failedCount", "failed_count"),
    "sentToCampaignCount": ("sentToCampaignCount", "sent_to_campaign_count"),
}

PROSPECT_SENT_CAMPAIGN_FIELDS: Tuple[str, ...] = (
    "sentToCampaignId",
    "sentToReplyioCampaignId",
    "sent_to_replyio_campaign_id",
)

CAMPAIGN_STATISTICS_FIELDS: FieldTable = {
    "emailsSent": ("emailsSent", "deliveries", "totalDeliveries", "emails_sent"),
    "emailsOpened": ("emailsOpened", "opens", "totalOpens", "emails_opened"),
    "emailsClicked": ("emailsClicked", "clicks", "totalClicks", "emails_clicked"),
    "emailsReplied": ("emailsReplied", "replies", "totalReplies", "emails_replied"),
    "overallOpenRate": ("overallOpenRate", "openRate", "open_rate"),
    "overallClickRate": ("overallClickRate", "clickRate", "click_rate"),
    "overallReplyRate": ("overallReplyRate", "replyRate", "reply_rate"),
    "dataLevel": ("dataLevel", "data_level"),
}

ACCOUNT_FIELDS: FieldTable = {
    "id": ("id", "accountId", "account_id"),
    "name": ("name", "accountName", "account_name"),
    "isDefault": ("isDefault", "is_default"),
}

CAMPAIGN_FIELDS: FieldTable = {
    "id": ("id",),
    "externalCampaignId": ("externalCampaignId", "campaignId", "replyioCampaignId", "campaign_id"),
    "name": ("name", "campaignName", "campaign_name"),
    "isDefault": ("isDefault", "is_default"),
    "accountId": ("accountId", "account_id", "replyioAccountId"),
}

LEGACY_SETTINGS_FIELDS: FieldTable = {
    "hasApiKey": ("hasApiKey", "has_api_key"),
    "campaignId": ("campaignId", "campaign_id", "replyIoCampaignId"),
}


# =============================================================================
# Primitive Resolution and Coercion
# =============================================================================


def resolve_field(payload: Optional[Mapping[str, Any]], candidates: Iterable[str]) -> Any:
    """
    Return the value of the first candidate key present with a non-null value.

    Args:
        payload: Mapping to probe; None or a non-mapping yields None
        candidates: Keys in priority order

    Returns:
        The resolved value, or None when no candidate matches
    """
    if not isinstance(payload, Mapping):
        return None
    for key in candidates:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def coerce_count(value: Any) -> int:
    """Coerce an upstream counter to a non-negative int, defaulting to 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0
    if not number.is_integer():
        logger.debug(f"Truncating fractional counter {value!r} to {int(number)}")
    return int(number)


def coerce_rate(value: Any) -> float:
    """Coerce an upstream percentage to a float clamped into [0, 100]."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number < 0:
        return 0.0
    return min(number, 100.0)


def coerce_id(value: Any) -> Optional[str]:
    """Coerce an upstream identifier to a non-empty string or None."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def coerce_flag(value: Any) -> bool:
    """Only an explicit true marks a flag; anything else is false."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (int, float)):
        return value == 1
    return False


def coerce_data_level(value: Any) -> DataLevel:
    """Parse a data level, falling back to campaign-specific for unknown values."""
    try:
        return DataLevel(value)
    except ValueError:
        return DataLevel.CAMPAIGN_SPECIFIC


def _list_payload(payload: Any, key: str) -> List[Any]:
    """Accept either {key: [...]} or a bare list."""
    if isinstance(payload, Mapping):
        payload = payload.get(key)
    if isinstance(payload, list):
        return payload
    return []


# =============================================================================
# Prospect Pipeline
# =============================================================================


def count_sent_to_campaign(prospects: Optional[Iterable[Mapping[str, Any]]]) -> int:
    """
    Count prospects whose sent-to-campaign id resolves to a non-null value.

    Args:
        prospects: Prospect records (REST objects or database rows)

    Returns:
        Number of prospects already pushed to a campaign
    """
    if not prospects:
        return 0
    return sum(
        1
        for prospect in prospects
        if coerce_id(resolve_field(prospect, PROSPECT_SENT_CAMPAIGN_FIELDS)) is not None
    )


def normalize_prospect_summary(
    summary: Optional[Mapping[str, Any]],
    prospects: Optional[Iterable[Mapping[str, Any]]] = None,
) -> ProspectPipelineSnapshot:
    """
    Build a ProspectPipelineSnapshot from a summary payload.

    When a prospect list is supplied, sentToCampaignCount is counted from the
    list; otherwise it is read from the summary itself (database rows carry
    it precomputed).

    Args:
        summary: Summary payload such as {totalProspects, completed, processing, failed}
        prospects: Optional prospect list carrying sent-to-campaign ids

    Returns:
        Snapshot with every missing field defaulted to 0
    """
    values = {
        field: coerce_count(resolve_field(summary, candidates))
        for field, candidates in PROSPECT_SUMMARY_FIELDS.items()
    }
    if prospects is not None:
        values["sentToCampaignCount"] = count_sent_to_campaign(prospects)
    return ProspectPipelineSnapshot(**values)


# =============================================================================
# Campaign Statistics
# =============================================================================


def normalize_campaign_statistics_snapshot(
    statistics: Optional[Mapping[str, Any]],
) -> CampaignStatisticsSnapshot:
    """Build a CampaignStatisticsSnapshot from a raw statistics object."""
    fields = CAMPAIGN_STATISTICS_FIELDS
    return CampaignStatisticsSnapshot(
        emailsSent=coerce_count(resolve_field(statistics, fields["emailsSent"])),
        emailsOpened=coerce_count(resolve_field(statistics, fields["emailsOpened"])),
        emailsClicked=coerce_count(resolve_field(statistics, fields["emailsClicked"])),
        emailsReplied=coerce_count(resolve_field(statistics, fields["emailsReplied"])),
        overallOpenRate=coerce_rate(resolve_field(statistics, fields["overallOpenRate"])),
        overallClickRate=coerce_rate(resolve_field(statistics, fields["overallClickRate"])),
        overallReplyRate=coerce_rate(resolve_field(statistics, fields["overallReplyRate"])),
        dataLevel=coerce_data_level(resolve_field(statistics, fields["dataLevel"])),
    )


def normalize_campaign_statistics(
    payload: Optional[Mapping[str, Any]],
) -> CampaignStatisticsResult:
    """
    Convert a `{success, statistics?}` response into a CampaignStatisticsResult.

    - No payload or success != true -> failure (message kept when present)
    - success with statistics missing -> success with a zero snapshot
    """
    if not isinstance(payload, Mapping):
        return CampaignStatisticsResult(state=FetchState.FAILURE, message="Empty statistics response")

    if payload.get("success") is not True:
        message = resolve_field(payload, ("message", "error"))
        return CampaignStatisticsResult(
            state=FetchState.FAILURE,
            message=str(message) if message is not None else None,
        )

    statistics = payload.get("statistics")
    return CampaignStatisticsResult(
        state=FetchState.SUCCESS,
        statistics=normalize_campaign_statistics_snapshot(statistics),
        message=coerce_id(resolve_field(statistics, ("note",))),
    )


# =============================================================================
# Integration Configuration
# =============================================================================


def normalize_accounts(payload: Any) -> List[AccountRef]:
    """Parse `{accounts: [...]}` (or a bare list) into AccountRefs, order preserved."""
    accounts: List[AccountRef] = []
    for entry in _list_payload(payload, "accounts"):
        account_id = coerce_id(resolve_field(entry, ACCOUNT_FIELDS["id"]))
        if account_id is None:
            logger.debug(f"Dropping account entry without id: {entry!r}")
            continue
        name = resolve_field(entry, ACCOUNT_FIELDS["name"])
        accounts.append(
            AccountRef(
                id=account_id,
                name=str(name) if name is not None else "",
                isDefault=coerce_flag(resolve_field(entry, ACCOUNT_FIELDS["isDefault"])),
            )
        )
    return accounts


def normalize_campaigns(payload: Any, account_id: Optional[str] = None) -> List[CampaignRef]:
    """
    Parse `{campaigns: [...]}` (or a bare list) into CampaignRefs, order preserved.

    Args:
        payload: Raw campaigns response
        account_id: Account the campaigns were fetched for; used when an entry
            does not name its account itself
    """
    campaigns: List[CampaignRef] = []
    for entry in _list_payload(payload, "campaigns"):
        campaign_id = coerce_id(resolve_field(entry, CAMPAIGN_FIELDS["id"]))
        external_id = coerce_id(resolve_field(entry, CAMPAIGN_FIELDS["externalCampaignId"]))
        if campaign_id is None:
            campaign_id = external_id
        if campaign_id is None:
            logger.debug(f"Dropping campaign entry without id: {entry!r}")
            continue
        name = resolve_field(entry, CAMPAIGN_FIELDS["name"])
        campaigns.append(
            CampaignRef(
                id=campaign_id,
                externalCampaignId=external_id,
                name=str(name) if name is not None else "",
                isDefault=coerce_flag(resolve_field(entry, CAMPAIGN_FIELDS["isDefault"])),
                accountId=coerce_id(resolve_field(entry, CAMPAIGN_FIELDS["accountId"])) or account_id,
            )
        )
    return campaigns


def normalize_legacy_settings(payload: Optional[Mapping[str, Any]]) -> Tuple[bool, Optional[str]]:
    """
    Read the single-key settings.

    Returns:
        (hasApiKey, campaignId); hasApiKey is true only for an explicit true
    """
    has_api_key = resolve_field(payload, LEGACY_SETTINGS_FIELDS["hasApiKey"]) is True
    campaign_id = coerce_id(resolve_field(payload, LEGACY_SETTINGS_FIELDS["campaignId"]))
    return has_api_key, campaign_id


def build_integration_configuration(
    accounts_payload: Any,
    campaigns_payload: Any = None,
    legacy_payload: Optional[Mapping[str, Any]] = None,
    account_id: Optional[str] = None,
) -> IntegrationConfiguration:
    """Assemble an IntegrationConfiguration from the three raw configuration payloads."""
    has_api_key, legacy_campaign_id = normalize_legacy_settings(legacy_payload)
    return IntegrationConfiguration(
        accounts=normalize_accounts(accounts_payload),
        campaigns=normalize_campaigns(campaigns_payload, account_id=account_id),
        hasLegacyApiKey=has_api_key,
        legacyCampaignId=legacy_campaign_id,
    )
