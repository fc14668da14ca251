from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from .types import Release, RepoId
from .util import log


class RepoState(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }

    etag: Optional[str] = None
    last_release_id: Optional[int] = None
    last_tag: Optional[str] = None
    last_published_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None

    def is_new(self, release: Release) -> bool:
        return release.id != self.last_release_id or release.tag_name != self.last_tag

    def checked(self, when: datetime) -> RepoState:
        return self.model_copy(update={"last_checked_at": when})

    def caught_up(self, etag: Optional[str], when: datetime) -> RepoState:
        return self.model_copy(
            update={
                "etag": etag if etag is not None else self.etag,
                "last_checked_at": when,
            }
        )

    @classmethod
    def notified(
        cls, release: Release, etag: Optional[str], when: datetime
    ) -> RepoState:
        # The release fields are only ever set here, all at once, so that the
        # stored ID & tag always describe the same release.
        return cls(
            etag=etag,
            last_release_id=release.id,
            last_tag=release.tag_name,
            last_published_at=release.published_at,
            last_checked_at=when,
        )


class StateFile(BaseModel):
    repos: Dict[str, RepoState] = Field(default_factory=dict)


@dataclass
class State:
    path: Path
    repos: dict[str, RepoState]

    @classmethod
    def from_file(cls, path: Path) -> State:
        try:
            data = StateFile.model_validate_json(path.read_bytes())
        except FileNotFoundError:
            log.info("State file %s not found; treating as empty", path)
            data = StateFile()
        except (OSError, ValueError) as e:
            log.warning("Could not read state file %s: %s; treating as empty", path, e)
            data = StateFile()
        return cls(path=path, repos=data.repos)

    def get(self, repo: RepoId) -> RepoState:
        return self.repos.get(str(repo), RepoState())

    def set(self, repo: RepoId, state: RepoState) -> None:  # noqa: A003
        self.repos[str(repo)] = state

    def save(self) -> None:
        log.info("Saving state to %s", self.path)
        doc = StateFile(repos=self.repos).model_dump_json(
            by_alias=True, exclude_none=True, indent=2
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(doc + "\n", encoding="utf-8")
        except OSError as e:
            raise StateWriteError(f"Could not write state file {self.path}: {e}")


class StateWriteError(Exception):
    pass
