"""
Pytest test module for the DataSource implementations.

LiveSource talks to the dashboard REST API through httpx.MockTransport and to
the database through a patched execute_query_one, so no network or Postgres
is needed. Every upstream failure must come back as a failure result or
None, never as an exception.
"""

from typing import Callable, Dict
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from backend.models import DataAvailabilityStatus, DataLevel, FetchState
from backend.services.data_sources import (
    ACCOUNTS_PATH,
    LEGACY_SETTINGS_PATH,
    STATISTICS_PATH,
    FixtureSource,
    LiveSource,
    create_data_source,
)
from backend.services.orchestrator import PipelineOrchestrator

pytestmark = pytest.mark.asyncio


Handler = Callable[[httpx.Request], httpx.Response]


def _routes(responses: Dict[str, httpx.Response]) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        response = responses.get(request.url.path)
        if response is None:
            return httpx.Response(404, json={"message": "not found"})
        return response
    return handler


def _live_source(settings, handler: Handler) -> LiveSource:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=settings.campaign_service_url,
    )
    return LiveSource(settings, client=client)


# =============================================================================
# Campaign Statistics
# =============================================================================


class TestLiveCampaignStatistics:

    async def test_success(self, live_settings):
        source = _live_source(live_settings, _routes({
            STATISTICS_PATH: httpx.Response(200, json={
                "success": True,
                "statistics": {
                    "emailsSent": 120,
                    "emailsOpened": 60,
                    "emailsClicked": 12,
                    "emailsReplied": 9,
                    "overallOpenRate": 50,
                    "overallClickRate": 10,
                    "overallReplyRate": 7.5,
                    "dataLevel": "basic",
                },
            }),
        }))

        result = await source.fetch_campaign_statistics()

        assert result.state == FetchState.SUCCESS
        assert result.statistics.emailsOpened == 60
        assert result.statistics.dataLevel == DataLevel.BASIC

    async def test_rate_limit_is_failure(self, live_settings):
        source = _live_source(live_settings, _routes({
            STATISTICS_PATH: httpx.Response(429, json={"message": "Too many requests"}),
        }))

        result = await source.fetch_campaign_statistics()

        assert result.state == FetchState.FAILURE
        assert result.message == "Campaign service rate limit reached"

    async def test_server_error_is_failure(self, live_settings):
        source = _live_source(live_settings, _routes({
            STATISTICS_PATH: httpx.Response(502, text="Bad gateway"),
        }))

        result = await source.fetch_campaign_statistics()

        assert result.state == FetchState.FAILURE
        assert "502" in result.message

    async def test_timeout_is_failure(self, live_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await _live_source(live_settings, handler).fetch_campaign_statistics()

        assert result.state == FetchState.FAILURE
        assert result.message == "Request timed out"

    async def test_connection_error_is_failure(self, live_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await _live_source(live_settings, handler).fetch_campaign_statistics()

        assert result.state == FetchState.FAILURE

    async def test_invalid_json_is_failure(self, live_settings):
        source = _live_source(live_settings, _routes({
            STATISTICS_PATH: httpx.Response(200, text="<html>maintenance</html>"),
        }))

        result = await source.fetch_campaign_statistics()

        assert result.state == FetchState.FAILURE
        assert result.message == "Invalid JSON response"

    async def test_reported_failure_is_failure(self, live_settings):
        source = _live_source(live_settings, _routes({
            STATISTICS_PATH: httpx.Response(200, json={"success": False, "message": "No campaign"}),
        }))

        result = await source.fetch_campaign_statistics()

        assert result.state == FetchState.FAILURE
        assert result.message == "No campaign"


# =============================================================================
# Configuration
# =============================================================================


class TestLiveConfiguration:

    async def test_fetches_accounts_campaigns_and_legacy_settings(self, live_settings):
        source = _live_source(live_settings, _routes({
            ACCOUNTS_PATH: httpx.Response(200, json={"accounts": [
                {"id": "acc-1", "name": "First"},
                {"id": "acc-2", "name": "Second", "isDefault": True},
            ]}),
            "/api/reply-io/accounts/acc-2/campaigns": httpx.Response(200, json={"campaigns": [
                {"id": "c1", "campaignId": 1420669, "name": "Sequence", "isDefault": True},
            ]}),
            LEGACY_SETTINGS_PATH: httpx.Response(200, json={"hasApiKey": False}),
        }))

        configuration = await source.fetch_configuration()

        assert [a.id for a in configuration.accounts] == ["acc-1", "acc-2"]
        assert configuration.campaigns[0].accountId == "acc-2"
        assert configuration.campaigns[0].externalCampaignId == "1420669"
        assert configuration.hasLegacyApiKey is False

    async def test_legacy_only_setup_skips_campaign_request(self, live_settings):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            if request.url.path == ACCOUNTS_PATH:
                return httpx.Response(200, json={"accounts": []})
            return httpx.Response(200, json={"hasApiKey": True, "campaignId": "98765"})

        configuration = await _live_source(live_settings, handler).fetch_configuration()

        assert configuration.accounts == []
        assert configuration.hasLegacyApiKey is True
        assert configuration.legacyCampaignId == "98765"
        assert sorted(requested) == sorted([ACCOUNTS_PATH, LEGACY_SETTINGS_PATH])

    async def test_every_request_failing_returns_none(self, live_settings):
        source = _live_source(live_settings, _routes({
            ACCOUNTS_PATH: httpx.Response(500, text="boom"),
            LEGACY_SETTINGS_PATH: httpx.Response(503, text="down"),
        }))

        assert await source.fetch_configuration() is None

    async def test_failed_accounts_request_keeps_legacy_key(self, live_settings):
        source = _live_source(live_settings, _routes({
            ACCOUNTS_PATH: httpx.Response(500, text="boom"),
            LEGACY_SETTINGS_PATH: httpx.Response(200, json={"hasApiKey": True, "campaignId": "123"}),
            STATISTICS_PATH: httpx.Response(429, json={"message": "Too many requests"}),
        }))

        configuration = await source.fetch_configuration()

        assert configuration.accounts == []
        assert configuration.hasLegacyApiKey is True
        assert configuration.legacyCampaignId == "123"

        orchestrator = PipelineOrchestrator(data_source=source)
        await orchestrator.load_configuration()
        view = await orchestrator.load_campaign_statistics()

        assert view.status == DataAvailabilityStatus.RATE_LIMITED
        assert view.selection.campaign.id == "123"

    async def test_failed_campaigns_request_keeps_selected_account(self, live_settings):
        source = _live_source(live_settings, _routes({
            ACCOUNTS_PATH: httpx.Response(200, json={"accounts": [{"id": "acc-1", "name": "Primary"}]}),
            "/api/reply-io/accounts/acc-1/campaigns": httpx.Response(502, text="Bad gateway"),
            LEGACY_SETTINGS_PATH: httpx.Response(200, json={"hasApiKey": False}),
        }))

        configuration = await source.fetch_configuration()

        assert [account.id for account in configuration.accounts] == ["acc-1"]
        assert configuration.campaigns == []

    async def test_failed_legacy_settings_request_keeps_accounts(self, live_settings):
        source = _live_source(live_settings, _routes({
            ACCOUNTS_PATH: httpx.Response(200, json={"accounts": [{"id": "acc-1"}]}),
            "/api/reply-io/accounts/acc-1/campaigns": httpx.Response(200, json={"campaigns": []}),
            LEGACY_SETTINGS_PATH: httpx.Response(200, text="not json"),
        }))

        configuration = await source.fetch_configuration()

        assert configuration.accounts[0].id == "acc-1"
        assert configuration.hasLegacyApiKey is False


# =============================================================================
# Prospect Snapshot
# =============================================================================


class TestLiveProspectSnapshot:

    async def test_reads_summary_row(self, live_settings):
        row = {
            "total_prospects": 250,
            "completed": 212,
            "processing": 23,
            "failed": 15,
            "sent_to_campaign_count": 148,
        }
        source = LiveSource(live_settings)

        with patch(
            "backend.services.data_sources.execute_query_one",
            new=AsyncMock(return_value=row),
        ) as query:
            snapshot = await source.fetch_prospect_snapshot()

        assert snapshot.totalUploaded == 250
        assert snapshot.sentToCampaignCount == 148
        args = query.await_args.args
        assert "FROM prospects" in args[0]
        assert len(args) == 1

    async def test_user_scope_is_passed_as_parameter(self, live_settings):
        settings = live_settings.model_copy(update={"user_id": "user-42"})
        source = LiveSource(settings)

        with patch(
            "backend.services.data_sources.execute_query_one",
            new=AsyncMock(return_value=None),
        ) as query:
            snapshot = await source.fetch_prospect_snapshot()

        assert snapshot.totalUploaded == 0
        assert query.await_args.args[1:] == ("user-42",)
        assert "$1" in query.await_args.args[0]

    async def test_database_error_returns_none(self, live_settings):
        source = LiveSource(live_settings)

        with patch(
            "backend.services.data_sources.execute_query_one",
            new=AsyncMock(side_effect=ConnectionRefusedError("refused")),
        ):
            assert await source.fetch_prospect_snapshot() is None

    async def test_missing_database_url_returns_none(self, live_settings):
        settings = live_settings.model_copy(update={"database_url": None})

        with patch("backend.services.data_sources.execute_query_one", new=AsyncMock()) as query:
            assert await LiveSource(settings).fetch_prospect_snapshot() is None

        query.assert_not_awaited()

    async def test_mock_pool_round_trip(self, live_settings, mock_database):
        conn = mock_database.acquire.return_value.__aenter__.return_value
        conn.fetchrow.return_value = {"total_prospects": 3, "completed": 1}

        snapshot = await LiveSource(live_settings).fetch_prospect_snapshot()

        assert snapshot.totalUploaded == 3
        assert snapshot.completed == 1


# =============================================================================
# Client Construction and Composition
# =============================================================================


class TestComposition:

    async def test_lazy_client_carries_bearer_token(self, live_settings):
        source = LiveSource(live_settings)

        client = source._get_client()

        assert client.headers["Authorization"] == "Bearer test-token"
        assert str(client.base_url).startswith("http://dashboard.test")
        await source.aclose()
        assert client.is_closed

    async def test_injected_client_is_not_closed(self, live_settings):
        client = httpx.AsyncClient(transport=httpx.MockTransport(_routes({})))
        source = LiveSource(live_settings, client=client)

        await source.aclose()

        assert not client.is_closed
        await client.aclose()

    async def test_create_data_source(self, live_settings, fixture_settings):
        assert isinstance(create_data_source(live_settings), LiveSource)
        assert isinstance(create_data_source(fixture_settings), FixtureSource)


class TestFixtureSource:

    async def test_fixture_data(self):
        source = FixtureSource()

        prospects = await source.fetch_prospect_snapshot()
        statistics = await source.fetch_campaign_statistics()
        configuration = await source.fetch_configuration()

        assert prospects.totalUploaded == 250
        assert prospects.sentToCampaignCount == 148
        assert statistics.state == FetchState.SUCCESS
        assert statistics.statistics.emailsReplied == 287
        assert configuration.accounts[0].name == "Demo Account (DEMO MODE)"
        assert configuration.campaigns[0].name == "Demo Sequence"
        assert configuration.campaigns[0].isDefault is True
