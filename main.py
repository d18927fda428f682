"""
Metrics API entry point.

Can be run three ways:
  1. python main.py [serve] [--port N]      — seed the store and start the API
  2. python main.py seed                    — create artifacts/metrics.json if missing
  3. python main.py sync-youtube [--owner]  — pull YouTube stats into the store now
"""

import argparse
import logging
import sys

import uvicorn

from app import app, build_youtube_client
from metrics_api.config import cfg
from metrics_api.errors import MetricsApiError
from metrics_api.store import MetricsStore
from metrics_api.youtube_sync import sync_all, sync_owner

logger = logging.getLogger(__name__)

ENDPOINTS = [
    "GET  /api/metrics",
    "GET  /api/metrics/:owner/:platform",
    "POST /api/metrics/:owner/:platform",
    "GET  /api/health",
]
YOUTUBE_ENDPOINTS = [
    "GET  /oauth/youtube/authorize",
    "POST /api/youtube/sync[/:owner]",
]


def banner(port: int, youtube: bool) -> str:
    lines = ["G Studio Metrics API", f"http://localhost:{port}", "", "Endpoints:"]
    lines += ENDPOINTS + (YOUTUBE_ENDPOINTS if youtube else [])
    width = max(len(line) for line in lines) + 4
    out = ["╔" + "═" * width + "╗"]
    out += [f"║  {line.ljust(width - 2)}║" for line in lines]
    out.append("╚" + "═" * width + "╝")
    return "\n".join(out)


def serve(port: int) -> None:
    MetricsStore(cfg.METRICS_FILE).ensure_seeded()
    print(banner(port, cfg.youtube_enabled))
    uvicorn.run(app, host=cfg.HOST, port=port, log_level=cfg.LOG_LEVEL.lower())


def sync_youtube(owner: str | None) -> int:
    client = build_youtube_client()
    if client is None:
        logger.error("YOUTUBE_CLIENT_ID / YOUTUBE_CLIENT_SECRET not set — nothing to sync.")
        return 1

    store = MetricsStore(cfg.METRICS_FILE)
    store.ensure_seeded()
    try:
        if owner:
            result = {owner: sync_owner(store, client, owner, cfg.YOUTUBE_HANDLES)}
        else:
            result = sync_all(store, client, cfg.YOUTUBE_HANDLES)
    except MetricsApiError as exc:
        logger.error("YouTube sync failed: %s", exc)
        return 1

    for name, counters in result.items():
        logger.info("%s/youtube → views:%d  followers:%d",
                    name, counters.get("views", 0), counters.get("followers", 0))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Social metrics API")
    sub = parser.add_subparsers(dest="command")

    serve_cmd = sub.add_parser("serve", help="Run the HTTP API (default)")
    serve_cmd.add_argument("--port", type=int, default=cfg.PORT)

    sub.add_parser("seed", help="Create the metrics file with default owners if missing")

    sync_cmd = sub.add_parser("sync-youtube", help="Fetch YouTube channel stats into the store")
    sync_cmd.add_argument("--owner", help="Only sync this owner (default: all configured)")

    args = parser.parse_args()

    try:
        if args.command == "seed":
            created = MetricsStore(cfg.METRICS_FILE).ensure_seeded()
            print(f"{'Created' if created else 'Kept existing'} {cfg.METRICS_FILE}")
        elif args.command == "sync-youtube":
            sys.exit(sync_youtube(args.owner))
        else:
            serve(getattr(args, "port", cfg.PORT))
    except KeyboardInterrupt:
        sys.exit(0)
