"""
Configuration Resolver Service

Picks the single "active" email-campaign account and campaign the funnel
reports on, from the configured accounts/campaigns plus the legacy
single-key setup.

Tie-break rule (accounts and campaigns alike):
- The entry flagged isDefault wins
- Otherwise the first entry in list order wins
- If several entries are flagged, the first flagged one in list order wins

Selection cases:
1. Accounts configured -> account by tie-break; campaign by tie-break over
   the (already account-scoped) campaign list, or None when it is empty
2. No accounts but a legacy API key -> no account, synthetic campaign built
   from the legacy campaign id (None when no id is stored)
3. Neither -> no account, no campaign

Pure functions over already-fetched inputs: no I/O, no exceptions. Absence of
data is represented as None.
"""

from typing import Optional, Sequence, TypeVar

from backend.models import (
    AccountRef,
    ActiveSelection,
    CampaignRef,
    IntegrationConfiguration,
)

RefT = TypeVar("RefT", AccountRef, CampaignRef)

LEGACY_CAMPAIGN_NAME = "Legacy campaign"


def pick_default(refs: Sequence[RefT]) -> Optional[RefT]:
    """
    Apply the tie-break: explicit default wins, otherwise first by list order.

    Args:
        refs: Accounts or campaigns in upstream order

    Returns:
        The selected entry, or None for an empty sequence
    """
    if not refs:
        return None
    for ref in refs:
        if ref.isDefault:
            return ref
    return refs[0]


def build_legacy_campaign(campaign_id: Optional[str]) -> Optional[CampaignRef]:
    """
    Build the synthetic campaign used in legacy single-key mode.

    The legacy setup stores only the external campaign id, so it doubles as
    the local id.
    """
    if not campaign_id:
        return None
    return CampaignRef(
        id=campaign_id,
        externalCampaignId=campaign_id,
        name=f"{LEGACY_CAMPAIGN_NAME} {campaign_id}",
        isDefault=True,
        accountId=None,
    )


def resolve_active_selection(
    accounts: Sequence[AccountRef],
    campaigns: Sequence[CampaignRef] = (),
    has_legacy_api_key: bool = False,
    legacy_campaign_id: Optional[str] = None,
) -> ActiveSelection:
    """
    Resolve the active account and campaign.

    Args:
        accounts: Configured accounts in upstream order
        campaigns: Campaigns of the selected account in upstream order, or empty
        has_legacy_api_key: Whether the legacy single API key is stored
        legacy_campaign_id: Campaign id stored alongside the legacy key

    Returns:
        A fresh ActiveSelection
    """
    if accounts:
        return ActiveSelection(
            account=pick_default(accounts),
            campaign=pick_default(campaigns),
        )

    if has_legacy_api_key:
        return ActiveSelection(
            account=None,
            campaign=build_legacy_campaign(legacy_campaign_id),
        )

    return ActiveSelection(account=None, campaign=None)


def resolve_from_configuration(
    configuration: Optional[IntegrationConfiguration],
) -> ActiveSelection:
    """Resolve the selection from an IntegrationConfiguration (None = nothing configured)."""
    if configuration is None:
        return ActiveSelection()
    return resolve_active_selection(
        accounts=configuration.accounts,
        campaigns=configuration.campaigns,
        has_legacy_api_key=configuration.hasLegacyApiKey,
        legacy_campaign_id=configuration.legacyCampaignId,
    )


def is_integration_configured(
    selection: ActiveSelection,
    has_legacy_api_key: bool = False,
) -> bool:
    """Configuration exists when an account is selected or the legacy key is stored."""
    return selection.account is not None or has_legacy_api_key
