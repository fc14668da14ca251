from __future__ import annotations
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Optional, Union
import click
from . import client
from .client import FetchError, Found, NoReleases, Unchanged
from .config import Configuration
from .notify import Notifier, NotifyResult, SendError
from .state import RepoState, State
from .types import Release, RepoId
from .util import log


class Outcome(Enum):
    UNCHANGED = "unchanged"
    NO_RELEASES = "no-releases"
    ALREADY_TRACKED = "already-tracked"
    NOTIFIED = "notified"
    WOULD_NOTIFY = "would-notify"


@dataclass
class Checked:
    repo: RepoId
    outcome: Outcome
    release: Optional[Release] = None

    @property
    def is_new(self) -> bool:
        return self.outcome in (Outcome.NOTIFIED, Outcome.WOULD_NOTIFY)

    def render(self) -> str:
        if self.outcome is Outcome.UNCHANGED:
            return f"= {self.repo}: no changes (304)"
        elif self.outcome is Outcome.NO_RELEASES:
            return f"~ {self.repo}: no published releases"
        assert self.release is not None
        if self.outcome is Outcome.ALREADY_TRACKED:
            return (
                f"= {self.repo}: already tracked {self.release.tag_name}"
                f" (#{self.release.id})"
            )
        elif self.outcome is Outcome.NOTIFIED:
            return f"+ {self.repo}: e-mail sent ({self.release.tag_name})"
        else:
            return (
                f"DRY-RUN {self.repo}: would send e-mail for"
                f" {self.release.tag_name}"
            )


@dataclass
class Failed:
    repo: RepoId
    error: str

    def render(self) -> str:
        return f"! {self.repo}: error {self.error}"


RepoResult = Union[Checked, Failed]


@dataclass
class RunSummary:
    notified: int = 0
    failed: int = 0


def now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GHRelease:
    state: State
    client: client.Client
    notifier: Notifier
    force: bool = False

    def __enter__(self) -> GHRelease:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.client.__exit__(exc_type, exc_val, exc_tb)

    @classmethod
    def from_config(
        cls,
        config: Configuration,
        state_file: Path,
        dry_run: bool = False,
        force: bool = False,
    ) -> GHRelease:
        return cls(
            state=State.from_file(state_file),
            client=client.Client(token=config.github_token),
            notifier=Notifier(config.mail, dry_run=dry_run),
            force=force,
        )

    def check_repo(self, repo: RepoId) -> RepoResult:
        old = self.state.get(repo)
        try:
            new, result = self._reconcile(repo, old)
        except (FetchError, SendError) as e:
            log.error("Error checking %s: %s", repo, e)
            self.state.set(repo, old.checked(now()))
            return Failed(repo=repo, error=str(e))
        self.state.set(repo, new)
        return result

    def _reconcile(self, repo: RepoId, old: RepoState) -> tuple[RepoState, Checked]:
        fetched = self.client.get_latest_release(
            repo, etag=None if self.force else old.etag
        )
        if isinstance(fetched, Unchanged):
            return (old.checked(now()), Checked(repo, Outcome.UNCHANGED))
        elif isinstance(fetched, NoReleases):
            return (old.checked(now()), Checked(repo, Outcome.NO_RELEASES))
        assert isinstance(fetched, Found)
        release = fetched.release
        if not (self.force or old.is_new(release)):
            log.info("%s already notified for %s", release, repo)
            return (
                old.caught_up(fetched.etag, now()),
                Checked(repo, Outcome.ALREADY_TRACKED, release),
            )
        log.info("New %s for %s", release, repo)
        if self.notifier.notify(repo, release) is NotifyResult.SENT:
            outcome = Outcome.NOTIFIED
        else:
            outcome = Outcome.WOULD_NOTIFY
        return (
            RepoState.notified(release, fetched.etag, now()),
            Checked(repo, outcome, release),
        )

    def run(
        self, repos: Iterable[RepoId], echo: Callable[..., None] = click.echo
    ) -> RunSummary:
        summary = RunSummary()
        for repo in repos:
            result = self.check_repo(repo)
            if isinstance(result, Failed):
                summary.failed += 1
                echo(result.render(), err=True)
            else:
                if result.is_new:
                    summary.notified += 1
                echo(result.render())
        if summary.failed:
            log.warning("%d repository(ies) could not be checked", summary.failed)
        self.save_state()
        return summary

    def save_state(self) -> None:
        self.state.save()
