"""
Run this first when the YouTube sync misbehaves.
  python diagnose.py
Each step reports pass/fail independently; nothing is written to the metrics store.
"""
from metrics_api.config import cfg
from metrics_api.store import MetricsStore

from app import build_youtube_client


def check(label, fn):
    print(f"\n{'─'*50}\n🔍 {label}")
    try:
        result = fn()
        print(f"   ✅ OK — {result}")
    except Exception as e:
        print(f"   ❌ ERROR: {e}")


# ── 1. Metrics store ──────────────────────────────────────────────────────────
def test_store():
    doc = MetricsStore(cfg.METRICS_FILE).load()
    owners = [k for k in doc if k != "lastUpdated"]
    return f"{cfg.METRICS_FILE} readable, owners: {owners}, lastUpdated: {doc.get('lastUpdated')}"


# ── 2. YouTube OAuth config ───────────────────────────────────────────────────
def test_youtube_config():
    if not cfg.youtube_enabled:
        raise RuntimeError("YOUTUBE_CLIENT_ID / YOUTUBE_CLIENT_SECRET not set")
    return f"redirect URI {cfg.YOUTUBE_REDIRECT_URI}, handles {cfg.YOUTUBE_HANDLES}"


# ── 3. Stored token (refreshes if expired) ────────────────────────────────────
def test_token():
    client = build_youtube_client()
    if client is None:
        raise RuntimeError("YouTube not configured")
    creds = client.credentials()
    return f"token valid until {creds.expiry} UTC, refresh token: {'yes' if creds.refresh_token else 'no'}"


# ── 4. Channel lookups ────────────────────────────────────────────────────────
def make_channel_check(handle):
    def test_channel():
        counters = build_youtube_client().fetch_channel_metrics(handle)
        return f"views={counters.views} subscribers={counters.followers}"
    return test_channel


# ── Run all ───────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    print("=" * 50)
    print("Metrics API — Diagnostics")
    print("=" * 50)

    check("Metrics store", test_store)
    check("YouTube OAuth config", test_youtube_config)
    check("YouTube token", test_token)
    if cfg.youtube_enabled:
        for owner, handle in cfg.YOUTUBE_HANDLES.items():
            check(f"YouTube channel {handle} ({owner})", make_channel_check(handle))

    print(f"\n{'='*50}\nDone. Fix any ❌ above before running main.py\n")
