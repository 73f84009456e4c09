"""
Data Availability Classifier Service

Classifies whether the external campaign data can be trusted. The dashboard
must tell "temporarily broken, try again" apart from "never set up, go
configure", so this is a three-way classification rather than a boolean:

| Fetch state        | Configuration present | Status         |
|--------------------|-----------------------|----------------|
| success            | any                   | live           |
| failure / pending  | yes                   | rate_limited   |
| failure / pending  | no                    | not_configured |

Configuration is present when an account is selected or the legacy single
API key is stored.
"""

from backend.models import ActiveSelection, DataAvailabilityStatus, FetchState
from backend.services.configuration import is_integration_configured


def classify_data_availability(
    selection: ActiveSelection,
    fetch_state: FetchState,
    has_legacy_api_key: bool = False,
) -> DataAvailabilityStatus:
    """
    Classify the external campaign data.

    Args:
        selection: Resolved active account/campaign
        fetch_state: Outcome of the most recent campaign-statistics fetch
        has_legacy_api_key: Whether the legacy single API key is stored

    Returns:
        DataAvailabilityStatus
    """
    if fetch_state == FetchState.SUCCESS:
        return DataAvailabilityStatus.LIVE

    if is_integration_configured(selection, has_legacy_api_key):
        return DataAvailabilityStatus.RATE_LIMITED

    return DataAvailabilityStatus.NOT_CONFIGURED


def describe_availability(status: DataAvailabilityStatus) -> str:
    """Short badge text for a status."""
    if status == DataAvailabilityStatus.LIVE:
        return "Live campaign data"
    if status == DataAvailabilityStatus.RATE_LIMITED:
        return "Campaign data temporarily unavailable, try again shortly"
    return "Campaign integration not configured"
