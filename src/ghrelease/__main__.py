from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional
import click
from click_loglevel import LogLevel
from dotenv import find_dotenv, load_dotenv
from . import __version__
from .config import Configuration, get_repo_list
from .core import GHRelease
from .state import StateWriteError
from .util import UserError, get_default_state_file, log


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(
    __version__,
    "-V",
    "--version",
    message="%(prog)s %(version)s",
)
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='JSON file with a "repos" array of repositories to check',
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Report new releases and update the state file without sending e-mail",
)
@click.option(
    "-E",
    "--env",
    type=click.Path(exists=True, dir_okay=False),
    help="Load environment variables from given .env file",
)
@click.option(
    "--force",
    is_flag=True,
    help="Ignore cached ETags and notify about every latest release",
)
@click.option(
    "-l",
    "--log-level",
    type=LogLevel(),
    default="WARNING",
    help="Set logging level",
    show_default=True,
)
@click.option(
    "-r",
    "--repo",
    "repos",
    multiple=True,
    metavar="OWNER/NAME",
    help="Repository to check for new releases (can be given multiple times)",
)
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    # The default is implemented as a factory in order to make it easy to test
    # with a fake $HOME:
    default=get_default_state_file,
    show_default="user state directory",
    help="Path to state file",
)
@click.pass_context
def main(
    ctx: click.Context,
    repos: tuple[str, ...],
    config_file: Optional[Path],
    state_file: Path,
    dry_run: bool,
    force: bool,
    env: Optional[str],
    log_level: int,
) -> None:
    """
    Send e-mails when GitHub repositories publish new releases.

    Required environment variables: MAIL_TO (comma-separated), MAIL_FROM.
    E-mail provider (choose one): RESEND_API_KEY, or SMTP_HOST, SMTP_PORT,
    SMTP_SECURE, SMTP_USER & SMTP_PASS.  Optional: GITHUB_TOKEN (higher rate
    limit; "not modified" responses do not count against it).
    """
    if not repos and config_file is None:
        click.echo(ctx.get_help())
        ctx.exit(1)
    if env is None:
        env = find_dotenv(usecwd=True)
    load_dotenv(env)
    logging.basicConfig(
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
        level=log_level,
    )
    try:
        repo_list = get_repo_list(repos, config_file)
        config = Configuration.from_environ(os.environ)
        with GHRelease.from_config(
            config, state_file, dry_run=dry_run, force=force
        ) as ghr:
            summary = ghr.run(repo_list)
    except UserError as e:
        raise click.UsageError(str(e))
    except StateWriteError as e:
        raise click.ClickException(str(e))
    log.info(
        "Checked %d repositories: %d new, %d failed",
        len(repo_list),
        summary.notified,
        summary.failed,
    )
    click.echo(f"Done. {summary.notified} repository(ies) with new release.")


if __name__ == "__main__":
    main()  # pragma: no cover
