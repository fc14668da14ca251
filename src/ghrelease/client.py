from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import json
from typing import Optional, Union
import ghreq
from pydantic import ValidationError
import requests
from .types import Release, RepoId
from .util import DEFAULT_API_URL, GITHUB_API_VERSION, HTTP_USER_AGENT, log


class AuthScheme(Enum):
    TOKEN = "token"
    BEARER = "Bearer"


#: Prefixes of classic personal access tokens & the other token types that
#: GitHub documents for use with the ``token`` authorization scheme
LEGACY_TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_")


def classify_token(token: str) -> AuthScheme:
    if token.strip().startswith(LEGACY_TOKEN_PREFIXES):
        return AuthScheme.TOKEN
    else:
        return AuthScheme.BEARER


def format_authorization(token: str) -> str:
    token = token.strip()
    return f"{classify_token(token).value} {token}"


@dataclass(frozen=True)
class Unchanged:
    pass


@dataclass(frozen=True)
class NoReleases:
    pass


@dataclass(frozen=True)
class Found:
    release: Release
    etag: Optional[str] = None


FetchResult = Union[Unchanged, NoReleases, Found]


class Client(ghreq.Client):
    def __init__(self, token: Optional[str] = None, api_url: str = DEFAULT_API_URL):
        # The Authorization header is set per request, as its scheme depends on
        # the kind of token in use.
        super().__init__(api_url=api_url, user_agent=HTTP_USER_AGENT)
        self.token = token

    def get_latest_release(
        self, repo: RepoId, etag: Optional[str] = None
    ) -> FetchResult:
        log.info("Fetching latest release for %s", repo)
        path = f"{repo.api_path}/releases/latest"
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = format_authorization(self.token)
        if etag is not None:
            headers["If-None-Match"] = etag
        try:
            r = self.get(path, headers=headers, raw=True)
        except requests.HTTPError as e:
            if e.response is None:
                raise FetchError(None, path, str(e))
            r = e.response
        except requests.RequestException as e:
            raise FetchError(None, path, str(e))
        if r.status_code == 404:
            log.info("%s has no published releases", repo)
            return NoReleases()
        elif r.status_code == 304:
            log.info("Latest release for %s not modified since last check", repo)
            return Unchanged()
        if not 200 <= r.status_code < 300:
            raise FetchError.from_response(r)
        try:
            release = Release.from_json(r.json())
        except (ValueError, ValidationError) as e:
            raise FetchError(r.status_code, r.url, f"Malformed release payload: {e}")
        log.info("Latest release for %s is %s", repo, release)
        return Found(release=release, etag=r.headers.get("ETag"))


class FetchError(Exception):
    def __init__(self, status: Optional[int], url: str, body: str) -> None:
        self.status = status
        self.url = url
        self.body = body
        super().__init__(status, url, body)

    @classmethod
    def from_response(cls, r: requests.Response) -> FetchError:
        try:
            body = json.dumps(r.json(), sort_keys=True)
        except ValueError:
            body = r.text
        return cls(r.status_code, r.url, body)

    def __str__(self) -> str:
        if self.status is None:
            return f"Request for {self.url} failed: {self.body}"
        else:
            return f"GitHub API {self.status} for {self.url}: {self.body}"
