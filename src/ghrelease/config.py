from __future__ import annotations
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from email.headerregistry import Address as PyAddress
from pathlib import Path
from typing import Annotated, Any, List, Literal, Optional, Union
import ghtoken  # Module import for mocking purposes
from mailbits import parse_address
from pydantic import (
    BaseModel,
    Field,
    GetCoreSchemaHandler,
    ValidationError,
    field_validator,
)
from pydantic_core import CoreSchema, core_schema
from .types import RepoId
from .util import UserError, log

ENV_VARS = (
    "MAIL_TO",
    "MAIL_FROM",
    "GITHUB_TOKEN",
    "RESEND_API_KEY",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_SECURE",
    "SMTP_USER",
    "SMTP_PASS",
)


@dataclass
class Address:
    name: Optional[str]
    address: str

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(cls),
                core_schema.no_info_after_validator_function(cls._parse, handler(str)),
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(asdict),
        )

    @classmethod
    def _parse(cls, value: str) -> Address:
        addr = parse_address(value)
        return cls(name=addr.display_name or None, address=addr.addr_spec)

    def as_py_address(self) -> PyAddress:
        return PyAddress(self.name or "", addr_spec=self.address)

    def __str__(self) -> str:
        return str(self.as_py_address())


class ResendConfig(BaseModel):
    model_config = {"frozen": True}

    method: Literal["resend"] = "resend"
    api_key: str = Field(repr=False)


class SMTPConfig(BaseModel):
    model_config = {"frozen": True}

    method: Literal["smtp"] = "smtp"
    host: str
    port: int = 587
    secure: bool = False
    user: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)


Provider = Annotated[Union[ResendConfig, SMTPConfig], Field(discriminator="method")]


class MailConfig(BaseModel):
    model_config = {"frozen": True}

    recipients: List[Address] = Field(min_length=1)
    sender: Address
    provider: Optional[Provider] = None


class Configuration(BaseModel):
    model_config = {"frozen": True}

    github_token: Optional[str] = Field(default=None, repr=False)
    mail: MailConfig

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> Configuration:
        try:
            env = EnvVars.model_validate(
                {k: v for k, v in environ.items() if k in ENV_VARS and v.strip()}
            )
            mail = env.get_mail_config()
        except ValidationError as e:
            raise UserError(format_env_errors(e))
        token = env.GITHUB_TOKEN
        if token is None:
            try:
                token = ghtoken.get_ghtoken(dotenv=False)
            except ghtoken.GHTokenNotFound:
                log.info("No GitHub token found; making unauthenticated requests")
        return cls(github_token=token, mail=mail)


class EnvVars(BaseModel):
    model_config = {"str_strip_whitespace": True}

    MAIL_TO: List[Address] = Field(min_length=1)
    MAIL_FROM: Address
    GITHUB_TOKEN: Optional[str] = None
    RESEND_API_KEY: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None

    @field_validator("MAIL_TO", mode="before")
    @classmethod
    def _listify(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    def get_mail_config(self) -> MailConfig:
        provider: Optional[Provider]
        if self.RESEND_API_KEY is not None:
            provider = ResendConfig(api_key=self.RESEND_API_KEY)
        elif self.SMTP_HOST is not None:
            provider = SMTPConfig(
                host=self.SMTP_HOST,
                port=self.SMTP_PORT,
                secure=self.SMTP_SECURE,
                user=self.SMTP_USER,
                password=self.SMTP_PASS,
            )
        else:
            provider = None
        return MailConfig(
            recipients=self.MAIL_TO, sender=self.MAIL_FROM, provider=provider
        )


def format_env_errors(e: ValidationError) -> str:
    lines = ["Invalid environment variables:"]
    for err in e.errors():
        field = ".".join(str(p) for p in err["loc"])
        lines.append(f"  {field}: {err['msg']}")
    lines.append(
        "Required: MAIL_TO, MAIL_FROM.  E-mail provider (choose one):"
        " RESEND_API_KEY or SMTP_HOST/SMTP_PORT/SMTP_SECURE/SMTP_USER/SMTP_PASS."
        "  Optional: GITHUB_TOKEN."
    )
    return "\n".join(lines)


class ReposFile(BaseModel):
    repos: List[str]


def load_repos_file(path: Path) -> list[str]:
    try:
        return ReposFile.model_validate_json(path.read_bytes()).repos
    except (OSError, ValueError) as e:
        raise UserError(f"Failed to load config file {path}: {e}")


def get_repo_list(
    repos: Sequence[str], config_file: Optional[Path]
) -> list[RepoId]:
    specs = list(repos)
    if config_file is not None:
        specs.extend(load_repos_file(config_file))
    try:
        return [RepoId.parse(s) for s in specs]
    except ValueError as e:
        raise UserError(str(e))
