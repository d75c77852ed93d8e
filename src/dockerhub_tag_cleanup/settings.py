from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dockerhub_tag_cleanup.base import (
    ConfigError,
    Credentials,
    RepositoryId,
    RetentionPolicy,
)

DOCKERHUB_BASE_URL = "https://hub.docker.com/v2"


class Settings(BaseSettings):
    """Action inputs, read from the ``INPUT_*`` environment of a workflow step."""

    model_config = SettingsConfigDict(
        env_prefix="INPUT_",
        case_sensitive=False,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    registry_type: str = "dockerhub"
    registry_url: str = DOCKERHUB_BASE_URL

    user: str = ""
    repos: list[str] = Field(default_factory=list)
    substrings: list[str] | None = None

    keep_last: int | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "keep_last", "INPUT_KEEP_LAST", "INPUT_KEEP-LAST"
        ),
    )
    force_full_cleanup: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "force_full_cleanup",
            "INPUT_FORCE_FULL_CLEANUP",
            "INPUT_FORCE-FULL-CLEANUP",
        ),
    )

    username: str = ""
    password: str = ""
    token: str = ""
    token_is_password: bool = False
    token_ttl_seconds: int = 300

    max_concurrency: int | None = Field(default=None, ge=1)
    dry_run: bool = False

    github_step_summary: str = Field(
        default="", validation_alias=AliasChoices("GITHUB_STEP_SUMMARY")
    )
    github_output: str = Field(
        default="", validation_alias=AliasChoices("GITHUB_OUTPUT")
    )

    @field_validator(
        "force_full_cleanup", "dry_run", "token_is_password", mode="before"
    )
    @classmethod
    def _parse_bool(cls, v: str | bool) -> bool:
        return v if isinstance(v, bool) else v.strip().lower() == "true"

    def retention_policy(self) -> RetentionPolicy:
        if self.keep_last is None:
            raise ConfigError('Please be sure to set input "keep-last" as a number')
        return RetentionPolicy(
            keep_count=self.keep_last,
            substrings=tuple(self.substrings) if self.substrings is not None else None,
            force_full_cleanup=self.force_full_cleanup,
        )

    def credentials(self) -> Credentials:
        return Credentials(
            username=self.username or self.user,
            password=self.password
            or (self.token if self.token_is_password else ""),
            token=self.token,
        )

    def repository_ids(self) -> list[RepositoryId]:
        return [RepositoryId.parse(repo, self.user) for repo in self.repos]
