from __future__ import annotations
from dataclasses import dataclass, field
from email.message import EmailMessage
from enum import Enum
from html import escape
from typing import Optional, Protocol
from eletter import compose, reply_quote
import outgoing
import requests
import resend
from resend.exceptions import ResendError
from .config import Address, MailConfig, Provider, ResendConfig, SMTPConfig
from .types import Release, RepoId
from .util import MAIL_USER_AGENT, UserError, log, truncate

TEXT_BODY_LIMIT = 1500

HTML_BODY_LIMIT = 4000


class NotifyResult(Enum):
    SENT = "sent"
    SKIPPED = "skipped"


@dataclass
class Mail:
    to: list[Address]
    from_: Address
    subject: str
    html: str
    text: str

    def to_email_message(self) -> EmailMessage:
        return compose(
            subject=self.subject,
            from_=self.from_.as_py_address(),
            to=[addr.as_py_address() for addr in self.to],
            text=self.text,
            html=self.html,
            headers={"User-Agent": MAIL_USER_AGENT},
        )


def render_mail(
    repo: RepoId, release: Release, recipients: list[Address], sender: Address
) -> Mail:
    author = f" by {release.author.login}" if release.author is not None else ""
    text = (
        f"New release in {repo}: {release.title}{author}\n"
        f"Tag: {release.tag_name}\n"
        f"Published: {release.published_at.isoformat()}\n"
        f"URL: {release.html_url}\n"
    )
    if release.body:
        text += "\n" + reply_quote(truncate(release.body, TEXT_BODY_LIMIT))
    html = (
        '<div style="font-family:system-ui,Segoe UI,Roboto,Arial,sans-serif;'
        'line-height:1.45">\n'
        f'<h2 style="margin:0 0 8px">New release in <code>{escape(str(repo))}'
        "</code></h2>\n"
        f'<p style="margin:0 0 8px"><strong>{escape(release.title)}</strong>'
        f"{escape(author)}</p>\n"
        f'<p style="margin:0 0 6px">Tag: <code>{escape(release.tag_name)}</code></p>\n'
        f'<p style="margin:0 0 6px">Published: {release.published_at:%Y-%m-%d %H:%M %Z}'
        "</p>\n"
        f'<p style="margin:0 0 12px"><a href="{escape(release.html_url)}">'
        f"{escape(release.html_url)}</a></p>\n"
    )
    if release.body:
        html += (
            '<pre style="white-space:pre-wrap;background:#f6f8fa;padding:12px;'
            'border-radius:6px;border:1px solid #eaecef">'
            f"{escape(truncate(release.body, HTML_BODY_LIMIT))}</pre>\n"
        )
    html += (
        '<hr style="border:none;border-top:1px solid #eee;margin:16px 0"/>\n'
        '<p style="color:#666">Sent by ghrelease</p>\n'
        "</div>\n"
    )
    return Mail(
        to=recipients,
        from_=sender,
        subject=f"New release: {repo} {release.title}",
        html=html,
        text=text,
    )


class Transport(Protocol):
    def send(self, mail: Mail) -> None: ...


@dataclass
class ResendTransport:
    config: ResendConfig

    def send(self, mail: Mail) -> None:
        log.info("Sending e-mail %r via Resend ...", mail.subject)
        resend.api_key = self.config.api_key
        try:
            r = resend.Emails.send(
                {
                    "from": str(mail.from_),
                    "to": [str(addr) for addr in mail.to],
                    "subject": mail.subject,
                    "html": mail.html,
                    "text": mail.text,
                }
            )
        except (ResendError, requests.RequestException, ValueError) as e:
            raise SendError(f"Resend error: {e}")
        log.info("Resend accepted e-mail with ID %s", r.get("id"))


@dataclass
class SMTPTransport:
    config: SMTPConfig
    sender: outgoing.Sender = field(init=False)

    def __post_init__(self) -> None:
        cfg: dict = {
            "method": "smtp",
            "host": self.config.host,
            "port": self.config.port,
        }
        auth = self.config.user is not None and self.config.password is not None
        if self.config.secure:
            cfg["ssl"] = True
        elif auth:
            # Do not send credentials over an unencrypted connection
            cfg["ssl"] = "starttls"
        if auth:
            cfg["username"] = self.config.user
            cfg["password"] = self.config.password
        try:
            self.sender = outgoing.from_dict(cfg)
        except outgoing.Error as e:
            raise UserError(f"Invalid SMTP configuration: {e}")

    def send(self, mail: Mail) -> None:
        log.info(
            "Sending e-mail %r via SMTP server %s ...", mail.subject, self.config.host
        )
        msg = mail.to_email_message()
        try:
            with self.sender:
                self.sender.send(msg)
        except OSError as e:
            raise SendError(f"SMTP error: {e}")


def get_transport(provider: Optional[Provider]) -> Optional[Transport]:
    if isinstance(provider, ResendConfig):
        return ResendTransport(provider)
    elif isinstance(provider, SMTPConfig):
        return SMTPTransport(provider)
    else:
        return None


@dataclass
class Notifier:
    config: MailConfig
    dry_run: bool = False
    transport: Optional[Transport] = None

    def __post_init__(self) -> None:
        if self.transport is None and not self.dry_run:
            self.transport = get_transport(self.config.provider)

    def compose(self, repo: RepoId, release: Release) -> Mail:
        return render_mail(
            repo, release, list(self.config.recipients), self.config.sender
        )

    def notify(self, repo: RepoId, release: Release) -> NotifyResult:
        mail = self.compose(repo, release)
        if self.dry_run:
            log.info(
                "Dry run: not sending e-mail %r to %s",
                mail.subject,
                ", ".join(map(str, mail.to)),
            )
            return NotifyResult.SKIPPED
        if self.transport is None:
            raise SendError(
                "No e-mail provider configured.  Set RESEND_API_KEY or SMTP_*"
                " environment variables."
            )
        self.transport.send(mail)
        return NotifyResult.SENT


class SendError(Exception):
    pass
