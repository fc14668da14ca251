from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import json
import re
from typing import Any, Optional
from ghrepo import GH_REPO_RGX, GH_USER_RGX
from pydantic import BaseModel, field_validator
from .util import dos2unix, log


@dataclass(frozen=True)
class RepoId:
    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> RepoId:
        m = re.fullmatch(rf"(?P<owner>{GH_USER_RGX})/(?P<name>{GH_REPO_RGX})", value)
        if m:
            return cls(owner=m["owner"], name=m["name"])
        else:
            raise ValueError(f"Invalid repo: {value!r}.  Expected owner/name.")

    @property
    def api_path(self) -> str:
        return f"/repos/{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


class User(BaseModel):
    login: str

    def __str__(self) -> str:
        return self.login


class Release(BaseModel):
    model_config = {"frozen": True}

    id: int  # noqa: A003
    tag_name: str
    # `name` is None or empty when the release was published without a title
    name: Optional[str] = None
    html_url: str
    published_at: datetime
    body: Optional[str] = None
    author: Optional[User] = None

    @field_validator("body")
    @classmethod
    def _dos2unix(cls, v: Optional[str]) -> Optional[str]:
        return dos2unix(v) if v is not None else None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Release:
        log.debug("Constructing Release from payload: %s", json.dumps(data))
        return cls.model_validate(data)

    @property
    def title(self) -> str:
        return self.name or self.tag_name

    def __str__(self) -> str:
        return f"release {self.tag_name} (#{self.id})"
