"""
Pipeline Orchestrator Service

Holds the three upstream snapshots (prospect counts, campaign statistics,
account/campaign configuration) and rebuilds the published PipelineView
whenever any one of them is applied:

    configuration -> resolve_from_configuration -> classify_data_availability
        -> build_funnel_snapshot -> generate_all_stage_insights -> PipelineView

Channels are independent. There is no join barrier: each channel may arrive
before or after the others, any number of times, and the most recently
applied snapshot per channel wins. Recomputation is always full.

Refresh:
- refresh() schedules a campaign-statistics fetch in the background and
  returns immediately; calls made while a fetch is in flight coalesce into
  a single follow-up fetch on the same task, and nothing in flight is ever
  cancelled
- refresh_if_stale() schedules the same fetch only when the statistics
  channel is older than its freshness window (or has never loaded) and no
  refresh is already in flight

The prospect and configuration channels are reloaded through load_all() or
their own load_* calls; refresh() never touches them.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from backend.core.config import Settings
from backend.models import (
    CampaignStatisticsResult,
    ChannelFreshness,
    FetchState,
    FunnelStageKey,
    IntegrationConfiguration,
    PipelineView,
    ProspectPipelineSnapshot,
    SnapshotChannel,
    StageDetail,
)
from backend.services.availability import classify_data_availability
from backend.services.configuration import resolve_from_configuration
from backend.services.data_sources import DataSource, create_data_source
from backend.services.funnel import build_funnel_snapshot
from backend.services.stage_insights import generate_all_stage_insights

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineOrchestrator:
    """
    Owns the upstream snapshots and the recompute trigger.

    Args:
        data_source: DataSource used by the load_* operations
        statistics_freshness: Age after which campaign statistics are stale
        prospect_freshness: Age after which the prospect snapshot is stale
        configuration_freshness: Age after which the configuration is stale
        clock: Returns the current time (timezone-aware); injectable for tests
    """

    def __init__(
        self,
        data_source: DataSource,
        statistics_freshness: timedelta = timedelta(minutes=30),
        prospect_freshness: timedelta = timedelta(minutes=5),
        configuration_freshness: timedelta = timedelta(minutes=60),
        clock: Clock = utc_now,
    ):
        self._data_source = data_source
        self._clock = clock
        self._thresholds: Dict[SnapshotChannel, timedelta] = {
            SnapshotChannel.PROSPECTS: prospect_freshness,
            SnapshotChannel.CAMPAIGN_STATISTICS: statistics_freshness,
            SnapshotChannel.CONFIGURATION: configuration_freshness,
        }

        self._prospects: Optional[ProspectPipelineSnapshot] = None
        self._statistics = CampaignStatisticsResult()
        self._configuration: Optional[IntegrationConfiguration] = None
        self._received_at: Dict[SnapshotChannel, datetime] = {}

        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_requested = False
        self._view = self._recompute()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        data_source: Optional[DataSource] = None,
    ) -> "PipelineOrchestrator":
        """Compose an orchestrator from Settings, creating the data source unless given."""
        return cls(
            data_source=data_source if data_source is not None else create_data_source(settings),
            statistics_freshness=timedelta(minutes=settings.statistics_freshness_minutes),
            prospect_freshness=timedelta(minutes=settings.prospect_freshness_minutes),
            configuration_freshness=timedelta(minutes=settings.configuration_freshness_minutes),
        )

    # =========================================================================
    # Published State
    # =========================================================================

    @property
    def view(self) -> PipelineView:
        """The most recently computed PipelineView."""
        return self._view

    @property
    def data_source(self) -> DataSource:
        return self._data_source

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def stage(self, stage_key: FunnelStageKey) -> StageDetail:
        """
        Detail bundle for one stage of the current view.

        Raises:
            KeyError: stage_key is not part of the view
        """
        for detail in self._view.stages:
            if detail.stageKey == stage_key:
                return detail
        raise KeyError(stage_key)

    def is_stale(self, channel: SnapshotChannel, now: Optional[datetime] = None) -> bool:
        """A channel is stale when it never loaded or is older than its freshness window."""
        received_at = self._received_at.get(channel)
        if received_at is None:
            return True
        now = now if now is not None else self._clock()
        return now - received_at > self._thresholds[channel]

    def freshness(self, now: Optional[datetime] = None) -> List[ChannelFreshness]:
        now = now if now is not None else self._clock()
        return [
            ChannelFreshness(
                channel=channel,
                receivedAt=self._received_at.get(channel),
                isStale=self.is_stale(channel, now),
            )
            for channel in SnapshotChannel
        ]

    # =========================================================================
    # Applying Snapshots
    # =========================================================================

    def apply_prospect_snapshot(self, snapshot: ProspectPipelineSnapshot) -> PipelineView:
        """Replace the prospect snapshot and recompute."""
        self._prospects = snapshot
        logger.info(
            f"Applied prospect snapshot: total={snapshot.totalUploaded}, "
            f"completed={snapshot.completed}, sent={snapshot.sentToCampaignCount}"
        )
        return self._mark_received(SnapshotChannel.PROSPECTS)

    def apply_campaign_statistics(self, result: CampaignStatisticsResult) -> PipelineView:
        """Replace the campaign-statistics result (success or failure) and recompute."""
        self._statistics = result
        logger.info(f"Applied campaign statistics: state={result.state.value}")
        return self._mark_received(SnapshotChannel.CAMPAIGN_STATISTICS)

    def apply_configuration(self, configuration: IntegrationConfiguration) -> PipelineView:
        """Replace the account/campaign configuration and recompute."""
        self._configuration = configuration
        logger.info(
            f"Applied configuration: accounts={len(configuration.accounts)}, "
            f"campaigns={len(configuration.campaigns)}, "
            f"legacy_key={configuration.hasLegacyApiKey}"
        )
        return self._mark_received(SnapshotChannel.CONFIGURATION)

    def _mark_received(self, channel: SnapshotChannel) -> PipelineView:
        self._received_at[channel] = self._clock()
        self._view = self._recompute()
        return self._view

    def _recompute(self) -> PipelineView:
        now = self._clock()
        configuration = self._configuration
        has_legacy_api_key = configuration.hasLegacyApiKey if configuration is not None else False

        selection = resolve_from_configuration(configuration)
        status = classify_data_availability(selection, self._statistics.state, has_legacy_api_key)
        funnel = build_funnel_snapshot(self._prospects, self._statistics.statistics, status)
        stages = generate_all_stage_insights(funnel, selection)

        logger.debug(f"Recomputed pipeline view: status={status.value}")

        return PipelineView(
            funnel=funnel,
            stages=stages,
            status=status,
            selection=selection,
            fetchState=self._statistics.state,
            dataLevel=funnel.metrics.dataLevel,
            computedAt=now,
            freshness=self.freshness(now),
        )

    # =========================================================================
    # Loading From the Data Source
    # =========================================================================

    async def load_prospects(self) -> PipelineView:
        """Fetch and apply the prospect snapshot; a failed fetch keeps the previous one."""
        snapshot = await self._data_source.fetch_prospect_snapshot()
        if snapshot is None:
            logger.warning("Prospect snapshot unavailable; keeping previous snapshot")
            return self._view
        return self.apply_prospect_snapshot(snapshot)

    async def load_campaign_statistics(self) -> PipelineView:
        """Fetch and apply campaign statistics, including failure results."""
        result = await self._data_source.fetch_campaign_statistics()
        return self.apply_campaign_statistics(result)

    async def load_configuration(self) -> PipelineView:
        """Fetch and apply the configuration; a failed fetch keeps the previous one."""
        configuration = await self._data_source.fetch_configuration()
        if configuration is None:
            logger.warning("Integration configuration unavailable; keeping previous configuration")
            return self._view
        return self.apply_configuration(configuration)

    async def load_all(self) -> PipelineView:
        """
        Load all three channels concurrently.

        Each channel is applied as soon as its own fetch completes, in
        whatever order they finish.
        """
        await asyncio.gather(
            self.load_prospects(),
            self.load_campaign_statistics(),
            self.load_configuration(),
        )
        logger.info(
            f"Pipeline loaded: status={self._view.status.value}, "
            f"fetch_state={self._view.fetchState.value}"
        )
        return self._view

    # =========================================================================
    # Background Refresh
    # =========================================================================

    def refresh(self) -> "asyncio.Task[PipelineView]":
        """
        Schedule a campaign-statistics fetch without waiting for it.

        Must be called from a running event loop. While a fetch is in flight
        no new task is created: one follow-up fetch is queued on the running
        task instead, however many times refresh() is called, and that task
        is returned. Nothing in flight is ever cancelled.
        """
        task = self._refresh_task
        if task is not None and not task.done():
            self._refresh_requested = True
            logger.info("Campaign statistics refresh in flight; follow-up fetch queued")
            return task

        self._refresh_requested = False
        task = asyncio.create_task(self._run_refresh())
        self._refresh_task = task
        task.add_done_callback(self._on_refresh_done)
        logger.info("Scheduled campaign statistics refresh")
        return task

    async def _run_refresh(self) -> PipelineView:
        view = await self.load_campaign_statistics()
        while self._refresh_requested:
            self._refresh_requested = False
            view = await self.load_campaign_statistics()
        return view

    def refresh_if_stale(self) -> bool:
        """
        Schedule a refresh when campaign statistics are stale.

        Returns:
            True if a refresh was scheduled
        """
        if self.refresh_in_flight:
            return False
        if not self.is_stale(SnapshotChannel.CAMPAIGN_STATISTICS):
            return False
        self.refresh()
        return True

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
            self._refresh_requested = False
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Campaign statistics refresh failed",
                exc_info=(type(error), error, error.__traceback__),
            )

    async def wait_for_refreshes(self) -> None:
        """Wait until the scheduled refresh, follow-up included, has finished."""
        task = self._refresh_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        """Let an in-flight refresh finish, then release the data source."""
        await self.wait_for_refreshes()
        await self._data_source.aclose()
