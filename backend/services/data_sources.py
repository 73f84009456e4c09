"""
Data Source Service

The DataSource capability fetches the three upstream snapshots the engine
consumes. Two implementations exist and one is chosen at composition time
from Settings.data_source; the aggregation code never knows which is in use.

- LiveSource: prospect counts from the dashboard Postgres database (asyncpg),
  campaign statistics and account/campaign configuration from the dashboard
  REST API that fronts the external email-campaign service (httpx)
- FixtureSource: fixed demo data, no network or database access

Failure contract (nothing is raised past this module for upstream trouble):
- fetch_campaign_statistics() returns a CampaignStatisticsResult in the
  failure state
- fetch_prospect_snapshot() / fetch_configuration() return None, meaning
  "keep the last applied snapshot"

Retry, backoff and rate limiting belong to the REST API behind
campaign_service_url; this module makes exactly one attempt per call.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import asyncpg
import httpx

from backend.core.config import Settings
from backend.core.database import execute_query_one
from backend.models import (
    CampaignStatisticsResult,
    DataSourceMode,
    FetchState,
    IntegrationConfiguration,
    ProspectPipelineSnapshot,
)
from backend.services.configuration import pick_default
from backend.services.field_resolution import (
    build_integration_configuration,
    normalize_accounts,
    normalize_campaign_statistics,
    normalize_campaigns,
    normalize_legacy_settings,
    normalize_prospect_summary,
)
from backend.sql import get_prospect_pipeline_summary_query

logger = logging.getLogger(__name__)


# =============================================================================
# REST API Paths (dashboard server)
# =============================================================================

STATISTICS_PATH = "/api/reply-io/statistics"
ACCOUNTS_PATH = "/api/reply-io/accounts"
ACCOUNT_CAMPAIGNS_PATH = "/api/reply-io/accounts/{account_id}/campaigns"
LEGACY_SETTINGS_PATH = "/api/reply-io/settings"

CONNECT_TIMEOUT_SECONDS = 10.0


class DataSource(ABC):
    """Fetches the prospect, campaign-statistics and configuration snapshots."""

    @abstractmethod
    async def fetch_prospect_snapshot(self) -> Optional[ProspectPipelineSnapshot]:
        """Current prospect pipeline counters, or None on failure."""

    @abstractmethod
    async def fetch_campaign_statistics(self) -> CampaignStatisticsResult:
        """Campaign statistics for the active campaign, never raising."""

    @abstractmethod
    async def fetch_configuration(self) -> Optional[IntegrationConfiguration]:
        """Account/campaign configuration, or None on failure."""

    async def aclose(self) -> None:
        """Release held resources."""
        return None


# =============================================================================
# Live Source
# =============================================================================


class LiveSource(DataSource):
    """
    Reads the dashboard database and REST API.

    Args:
        settings: Application settings (URLs, token, timeout, user scope)
        client: Optional pre-built httpx.AsyncClient; when omitted one is
            created lazily and closed by aclose()
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._settings.campaign_service_token:
                headers["Authorization"] = f"Bearer {self._settings.campaign_service_token}"
            self._client = httpx.AsyncClient(
                base_url=self._settings.campaign_service_url,
                headers=headers,
                timeout=httpx.Timeout(
                    self._settings.campaign_service_timeout_seconds,
                    connect=CONNECT_TIMEOUT_SECONDS,
                ),
            )
        return self._client

    async def _get_json(self, path: str) -> Any:
        """
        GET a JSON document.

        Raises:
            httpx.HTTPError: transport failure or non-2xx status
            ValueError: body is not valid JSON
        """
        response = await self._get_client().get(path)
        response.raise_for_status()
        return response.json()

    async def fetch_prospect_snapshot(self) -> Optional[ProspectPipelineSnapshot]:
        if not self._settings.database_url:
            logger.warning("DATABASE_URL is not configured; prospect snapshot unavailable")
            return None

        user_id = self._settings.user_id
        query = get_prospect_pipeline_summary_query(user_id=user_id)
        args = (user_id,) if user_id is not None else ()

        try:
            row = await execute_query_one(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Prospect summary query failed: {e}", exc_info=True)
            return None

        return normalize_prospect_summary(dict(row) if row is not None else None)

    async def fetch_campaign_statistics(self) -> CampaignStatisticsResult:
        try:
            payload = await self._get_json(STATISTICS_PATH)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code == 429:
                message = "Campaign service rate limit reached"
            else:
                message = f"Campaign statistics request failed with HTTP {status_code}"
            logger.warning(message)
            return CampaignStatisticsResult(state=FetchState.FAILURE, message=message)
        except httpx.TimeoutException:
            logger.warning("Campaign statistics request timed out")
            return CampaignStatisticsResult(state=FetchState.FAILURE, message="Request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Campaign statistics request failed: {e}")
            return CampaignStatisticsResult(state=FetchState.FAILURE, message=str(e))
        except ValueError as e:
            logger.warning(f"Campaign statistics response is not valid JSON: {e}")
            return CampaignStatisticsResult(state=FetchState.FAILURE, message="Invalid JSON response")

        result = normalize_campaign_statistics(payload)
        if result.state == FetchState.FAILURE:
            logger.warning(f"Campaign service reported failure: {result.message}")
        return result

    async def _get_optional_json(self, path: str, what: str) -> Any:
        """GET a JSON document, returning None (logged) on failure."""
        try:
            return await self._get_json(path)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{what} fetch failed: {e}")
            return None

    async def fetch_configuration(self) -> Optional[IntegrationConfiguration]:
        """
        Accounts, legacy settings and the default account's campaigns.

        Each part is fetched on its own; a failed part defaults to empty
        (no accounts, no legacy key, no campaigns). None is returned only
        when every attempted part failed.
        """
        accounts_payload = await self._get_optional_json(ACCOUNTS_PATH, "Accounts")
        legacy_payload = await self._get_optional_json(LEGACY_SETTINGS_PATH, "Legacy settings")

        accounts = normalize_accounts(accounts_payload)
        has_api_key, legacy_campaign_id = normalize_legacy_settings(legacy_payload)

        campaigns = []
        campaigns_failed = False
        account = pick_default(accounts)
        if account is not None:
            campaigns_payload = await self._get_optional_json(
                ACCOUNT_CAMPAIGNS_PATH.format(account_id=account.id), "Campaigns"
            )
            campaigns_failed = campaigns_payload is None
            campaigns = normalize_campaigns(campaigns_payload, account_id=account.id)

        if accounts_payload is None and legacy_payload is None:
            logger.warning("Integration configuration unavailable: every request failed")
            return None
        if accounts_payload is None or legacy_payload is None or campaigns_failed:
            logger.warning("Integration configuration is partial; failed parts default to empty")

        return IntegrationConfiguration(
            accounts=accounts,
            campaigns=campaigns,
            hasLegacyApiKey=has_api_key,
            legacyCampaignId=legacy_campaign_id,
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


# =============================================================================
# Fixture Source
# =============================================================================

FIXTURE_PROSPECT_SUMMARY = {
    "totalProspects": 250,
    "completed": 212,
    "processing": 23,
    "failed": 15,
    "sentToCampaignCount": 148,
}

FIXTURE_STATISTICS_RESPONSE = {
    "success": True,
    "statistics": {
        "emailsSent": 2691,
        "emailsOpened": 1129,
        "emailsClicked": 241,
        "emailsReplied": 287,
        "overallOpenRate": 41.9,
        "overallClickRate": 9.0,
        "overallReplyRate": 10.7,
        "dataLevel": "campaign-specific",
    },
}

FIXTURE_ACCOUNTS_RESPONSE = {
    "accounts": [
        {"id": "demo-account", "name": "Demo Account (DEMO MODE)", "isDefault": True},
    ]
}

FIXTURE_CAMPAIGNS_RESPONSE = {
    "campaigns": [
        {"id": "demo-campaign", "campaignId": 1420669, "name": "Demo Sequence", "isDefault": True},
        {"id": "demo-campaign-2", "campaignId": 1420670, "name": "Follow-up Sequence", "isDefault": False},
    ]
}

FIXTURE_LEGACY_SETTINGS = {"hasApiKey": False}


class FixtureSource(DataSource):
    """Serves fixed demo data shaped like the live REST payloads."""

    async def fetch_prospect_snapshot(self) -> Optional[ProspectPipelineSnapshot]:
        return normalize_prospect_summary(FIXTURE_PROSPECT_SUMMARY)

    async def fetch_campaign_statistics(self) -> CampaignStatisticsResult:
        return normalize_campaign_statistics(FIXTURE_STATISTICS_RESPONSE)

    async def fetch_configuration(self) -> Optional[IntegrationConfiguration]:
        return build_integration_configuration(
            FIXTURE_ACCOUNTS_RESPONSE,
            FIXTURE_CAMPAIGNS_RESPONSE,
            FIXTURE_LEGACY_SETTINGS,
            account_id="demo-account",
        )


def create_data_source(settings: Settings) -> DataSource:
    """Compose the DataSource selected by settings.data_source."""
    if settings.data_source == DataSourceMode.FIXTURE:
        logger.info("Using fixture data source")
        return FixtureSource()
    logger.info(f"Using live data source at {settings.campaign_service_url}")
    return LiveSource(settings)
