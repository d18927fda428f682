"""
Pull YouTube channel statistics into the metrics store.

The owner → channel handle table comes from cfg.YOUTUBE_HANDLES.
"""

import logging

from metrics_api.errors import NotFound
from metrics_api.store import MetricsStore
from metrics_api.youtube_client import YouTubeClient

logger = logging.getLogger(__name__)


def sync_owner(
    store: MetricsStore,
    client: YouTubeClient,
    owner: str,
    handles: dict[str, str],
) -> dict:
    """Fetch the owner's channel and merge it into owner.youtube. Store untouched on failure."""
    handle = handles.get(owner)
    if not handle:
        raise NotFound(f"No YouTube handle configured for '{owner}'")

    counters = client.fetch_channel_metrics(handle)
    updated = store.upsert_counters(owner, "youtube", counters.as_dict())
    logger.info("Synced %s/youtube from %s", owner, handle)
    return updated


def sync_all(store: MetricsStore, client: YouTubeClient, handles: dict[str, str]) -> dict[str, dict]:
    """Sync every configured owner in table order; the first failure propagates."""
    return {owner: sync_owner(store, client, owner, handles) for owner in handles}


def scheduled_sync(store: MetricsStore, client: YouTubeClient, handles: dict[str, str]) -> None:
    """APScheduler job: never raises, so one bad run does not kill the schedule."""
    if not client.is_authenticated():
        logger.info("Skipping scheduled YouTube sync — not authenticated.")
        return
    try:
        synced = sync_all(store, client, handles)
        logger.info("Scheduled YouTube sync updated: %s", ", ".join(synced))
    except Exception as exc:
        logger.error("Scheduled YouTube sync failed: %s", exc)
