from __future__ import annotations
import json
from pathlib import Path
import ghtoken
import pytest
from pytest_mock import MockerFixture
from ghrelease.config import (
    Address,
    Configuration,
    MailConfig,
    ResendConfig,
    SMTPConfig,
    get_repo_list,
)
from ghrelease.types import RepoId
from ghrelease.util import UserError

BASE_ENV = {
    "MAIL_TO": "me@example.com",
    "MAIL_FROM": "GH Release <ghrelease@example.com>",
    "GITHUB_TOKEN": "ghp_1234567890",
}


@pytest.fixture(autouse=True)
def no_ghtoken(mocker: MockerFixture) -> None:
    mocker.patch("ghtoken.get_ghtoken", side_effect=ghtoken.GHTokenNotFound())


def test_minimal_environ() -> None:
    config = Configuration.from_environ(BASE_ENV)
    assert config.github_token == "ghp_1234567890"
    assert config.mail.recipients == [Address(name=None, address="me@example.com")]
    assert config.mail.sender == Address(
        name="GH Release", address="ghrelease@example.com"
    )
    assert config.mail.provider is None


def test_multiple_recipients() -> None:
    config = Configuration.from_environ(
        {**BASE_ENV, "MAIL_TO": " me@example.com,, Ops <ops@example.org> , "}
    )
    assert config.mail.recipients == [
        Address(name=None, address="me@example.com"),
        Address(name="Ops", address="ops@example.org"),
    ]


def test_resend_provider() -> None:
    config = Configuration.from_environ({**BASE_ENV, "RESEND_API_KEY": "re_123"})
    assert config.mail.provider == ResendConfig(api_key="re_123")


def test_smtp_provider() -> None:
    config = Configuration.from_environ(
        {
            **BASE_ENV,
            "SMTP_HOST": "mail.example.com",
            "SMTP_PORT": "465",
            "SMTP_SECURE": "true",
            "SMTP_USER": "mailer",
            "SMTP_PASS": "hunter2",
        }
    )
    assert config.mail.provider == SMTPConfig(
        host="mail.example.com",
        port=465,
        secure=True,
        user="mailer",
        password="hunter2",
    )


def test_smtp_provider_defaults() -> None:
    config = Configuration.from_environ({**BASE_ENV, "SMTP_HOST": "localhost"})
    assert config.mail.provider == SMTPConfig(host="localhost")
    assert config.mail.provider.port == 587
    assert not config.mail.provider.secure


def test_resend_takes_priority() -> None:
    config = Configuration.from_environ(
        {**BASE_ENV, "RESEND_API_KEY": "re_123", "SMTP_HOST": "mail.example.com"}
    )
    assert isinstance(config.mail.provider, ResendConfig)


def test_empty_values_are_unset() -> None:
    config = Configuration.from_environ(
        {**BASE_ENV, "GITHUB_TOKEN": "  ", "RESEND_API_KEY": "", "SMTP_HOST": ""}
    )
    assert config.github_token is None
    assert config.mail.provider is None


def test_token_fallback(mocker: MockerFixture) -> None:
    m = mocker.patch("ghtoken.get_ghtoken", return_value="gho_from_gh_cli")
    env = dict(BASE_ENV)
    del env["GITHUB_TOKEN"]
    config = Configuration.from_environ(env)
    assert config.github_token == "gho_from_gh_cli"
    m.assert_called_once_with(dotenv=False)


def test_no_token() -> None:
    env = dict(BASE_ENV)
    del env["GITHUB_TOKEN"]
    assert Configuration.from_environ(env).github_token is None


def test_unrelated_environ_ignored() -> None:
    config = Configuration.from_environ({**BASE_ENV, "PATH": "/bin", "HOME": "/x"})
    assert config.mail.provider is None


@pytest.mark.parametrize(
    "env,field",
    [
        ({"MAIL_FROM": "a@example.com"}, "MAIL_TO"),
        ({"MAIL_TO": "a@example.com"}, "MAIL_FROM"),
        ({"MAIL_TO": " , ", "MAIL_FROM": "a@example.com"}, "MAIL_TO"),
        (
            {
                "MAIL_TO": "a@example.com",
                "MAIL_FROM": "a@example.com",
                "SMTP_PORT": "x",
            },
            "SMTP_PORT",
        ),
        (
            {
                "MAIL_TO": "a@example.com",
                "MAIL_FROM": "a@example.com",
                "SMTP_HOST": "mail.example.com",
                "SMTP_SECURE": "tls",
            },
            "SMTP_SECURE",
        ),
    ],
)
def test_bad_environ(env: dict[str, str], field: str) -> None:
    with pytest.raises(UserError) as excinfo:
        Configuration.from_environ(env)
    msg = str(excinfo.value)
    assert msg.startswith("Invalid environment variables:\n")
    assert f"\n  {field}" in msg
    assert "Required: MAIL_TO, MAIL_FROM." in msg


def test_mail_config_accepts_addresses() -> None:
    mail = MailConfig(
        recipients=[Address(name=None, address="me@example.com")],
        sender=Address(name="Bot", address="bot@example.com"),
    )
    assert mail.recipients == [Address(name=None, address="me@example.com")]
    assert mail.sender == Address(name="Bot", address="bot@example.com")
    assert str(mail.sender) == "Bot <bot@example.com>"


def test_config_is_frozen() -> None:
    config = Configuration.from_environ(BASE_ENV)
    with pytest.raises(ValueError):
        config.github_token = "other"  # type: ignore[misc]


def test_get_repo_list(tmp_path: Path) -> None:
    cfg = tmp_path / "repos.json"
    cfg.write_text(json.dumps({"repos": ["octo/demo", "oven-sh/bun"]}))
    assert get_repo_list(("octo/demo", "vercel/next.js"), cfg) == [
        RepoId("octo", "demo"),
        RepoId("vercel", "next.js"),
        RepoId("octo", "demo"),
        RepoId("oven-sh", "bun"),
    ]


def test_get_repo_list_cli_only() -> None:
    assert get_repo_list(["octo/demo"], None) == [RepoId("octo", "demo")]


def test_get_repo_list_bad_repo() -> None:
    with pytest.raises(UserError, match="Invalid repo: 'octo'"):
        get_repo_list(["octo/demo", "octo"], None)


@pytest.mark.parametrize(
    "content",
    ["{", "{}", '{"repos": "octo/demo"}', '["octo/demo"]'],
)
def test_bad_repos_file(tmp_path: Path, content: str) -> None:
    cfg = tmp_path / "repos.json"
    cfg.write_text(content)
    with pytest.raises(UserError, match="^Failed to load config file"):
        get_repo_list([], cfg)
