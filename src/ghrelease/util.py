from __future__ import annotations
import logging
from pathlib import Path
import platform
import re
from platformdirs import user_state_path
import requests
from . import __url__, __version__

log = logging.getLogger(__package__)

MAIL_USER_AGENT = f"ghrelease/{__version__} ({__url__})"

HTTP_USER_AGENT = "ghrelease/{} ({}) requests/{} {}/{}".format(
    __version__,
    __url__,
    requests.__version__,
    platform.python_implementation(),
    platform.python_version(),
)

DEFAULT_API_URL = "https://api.github.com"

GITHUB_API_VERSION = "2022-11-28"


def get_default_state_file() -> Path:
    return user_state_path("ghrelease") / "state.json"


def dos2unix(s: str) -> str:
    return re.sub(r"\r\n?", "\n", s)


def truncate(s: str | None, limit: int) -> str:
    if not s:
        return ""
    return s if len(s) <= limit else s[:limit] + "…"


class UserError(Exception):
    pass
