"""
Central configuration loaded from environment variables / .env file.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def parse_handles(raw: str) -> dict[str, str]:
    """Parse "owner=@handle,owner2=@handle2" into an ordered owner → handle table."""
    table: dict[str, str] = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        owner, sep, handle = pair.partition("=")
        if not sep or not owner.strip() or not handle.strip():
            raise ValueError(f"Invalid YOUTUBE_HANDLES entry: {pair!r}")
        table[owner.strip()] = handle.strip()
    return table


class Config:
    # ── Server ─────────────────────────────────────────────────────────────────
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # ── Persisted files ────────────────────────────────────────────────────────
    METRICS_FILE: str = os.getenv("METRICS_FILE", "artifacts/metrics.json")
    YOUTUBE_AUTH_FILE: str = os.getenv(
        "YOUTUBE_AUTH_FILE", "artifacts/youtube-auth.json"
    )

    # ── YouTube OAuth ──────────────────────────────────────────────────────────
    # Optional: if either is unset the YouTube routes are not mounted
    YOUTUBE_CLIENT_ID: str | None = os.getenv("YOUTUBE_CLIENT_ID")
    YOUTUBE_CLIENT_SECRET: str | None = os.getenv("YOUTUBE_CLIENT_SECRET")
    YOUTUBE_REDIRECT_URI: str = os.getenv(
        "YOUTUBE_REDIRECT_URI", "http://localhost:3001/oauth/youtube/callback"
    )

    # Which channel handle backs each owner's youtube counters
    YOUTUBE_HANDLES: dict[str, str] = parse_handles(
        os.getenv("YOUTUBE_HANDLES", "personal=@gstudio,studio=@gstudioofficial")
    )

    # Seconds before an outbound Google call is abandoned
    UPSTREAM_TIMEOUT: float = float(os.getenv("UPSTREAM_TIMEOUT", "15"))

    # Crontab expression (e.g. "0 6 * * *"); unset disables the scheduled sync
    YOUTUBE_SYNC_CRON: str | None = os.getenv("YOUTUBE_SYNC_CRON") or None

    @property
    def youtube_enabled(self) -> bool:
        return bool(self.YOUTUBE_CLIENT_ID and self.YOUTUBE_CLIENT_SECRET)


cfg = Config()
