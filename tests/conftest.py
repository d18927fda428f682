import json
import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app import create_app
from metrics_api.store import MetricsStore
from metrics_api.youtube_client import YouTubeClient

HANDLES = {"personal": "@gstudio", "studio": "@gstudioofficial"}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def store(tmp_path):
    s = MetricsStore(str(tmp_path / "artifacts" / "metrics.json"))
    s.ensure_seeded()
    return s


@pytest.fixture
def youtube(tmp_path):
    return YouTubeClient(
        client_id="client-123",
        client_secret="shh",
        redirect_uri="http://localhost:3001/oauth/youtube/callback",
        token_file=str(tmp_path / "artifacts" / "youtube-auth.json"),
        timeout=5,
    )


@pytest.fixture
def write_token(youtube):
    def _write(expires_in=timedelta(hours=1), refresh_token="refresh-1"):
        expiry = datetime.now(timezone.utc) + expires_in
        os.makedirs(os.path.dirname(youtube.token_file), exist_ok=True)
        with open(youtube.token_file, "w", encoding="utf-8") as f:
            json.dump({
                "access_token": "access-1",
                "refresh_token": refresh_token,
                "expiry": expiry.isoformat().replace("+00:00", "Z"),
                "scope": "https://www.googleapis.com/auth/youtube.readonly",
                "token_type": "Bearer",
            }, f)
    return _write


@pytest.fixture
def fake_channels(youtube, monkeypatch):
    """Stub the Data API: handle → (channel_id, statistics) or None for a search miss."""
    calls = []

    def install(channels):
        def fake_get(session, path, params):
            calls.append((path, dict(params)))
            if path == "/search":
                hit = channels.get(params["q"])
                if hit is None:
                    return {"items": []}
                return {"items": [{"id": {"kind": "youtube#channel", "channelId": hit[0]}}]}
            for channel_id, stats in channels.values():
                if channel_id == params["id"]:
                    return {"items": [{"id": channel_id, "statistics": stats}]}
            return {"items": []}

        monkeypatch.setattr(youtube, "_get", fake_get)
        return calls

    return install


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


@pytest.fixture
def yt_client(store, youtube):
    return TestClient(create_app(store, youtube, handles=HANDLES))
