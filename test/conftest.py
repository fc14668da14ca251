from __future__ import annotations
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from itertools import count
import json
import logging
from pathlib import Path
from typing import Any, Optional
import pytest
import requests
from ghrelease.types import Release


@pytest.fixture(autouse=True)
def capture_all_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="ghrelease")


@pytest.fixture()
def tmp_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Path:
    home = tmp_path_factory.mktemp("tmp_home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("XDG_STATE_HOME", raising=False)
    monkeypatch.setenv("LOCALAPPDATA", str(home))
    return home


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> Callable[[int], datetime]:
    """
    Make `ghrelease.core.now()` return a timestamp one minute later on each
    call, starting at 2026-01-01T00:00:00Z.  The fixture value maps a tick
    number to the timestamp returned on that tick.
    """
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    ticks = count()
    monkeypatch.setattr(
        "ghrelease.core.now", lambda: start + timedelta(minutes=next(ticks))
    )
    return lambda i: start + timedelta(minutes=i)


def mkrelease(id: int, tag: str, **kwargs: Any) -> Release:  # noqa: A002
    data = {
        "id": id,
        "tag_name": tag,
        "name": None,
        "html_url": f"https://github.com/octo/demo/releases/tag/{tag}",
        "published_at": "2025-12-24T12:00:00Z",
        "body": None,
        "author": {"login": "octocat", "id": 1},
    }
    data.update(kwargs)
    return Release.model_validate(data)


def mkresponse(
    status: int,
    data: Any = None,
    etag: Optional[str] = None,
    url: str = "https://api.github.com/repos/octo/demo/releases/latest",
) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r.url = url
    r.encoding = "utf-8"
    if data is not None:
        r._content = json.dumps(data).encode("utf-8")
        r.headers["Content-Type"] = "application/json"
    else:
        r._content = b""
    if etag is not None:
        r.headers["ETag"] = etag
    return r
