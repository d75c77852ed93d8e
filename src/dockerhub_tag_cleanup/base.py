from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from dockerhub_tag_cleanup.settings import Settings


class RegistryCleanupError(Exception):
    """Base class for errors raised while cleaning up a registry."""


class ConfigError(RegistryCleanupError):
    pass


class AuthError(RegistryCleanupError):
    pass


class FetchError(RegistryCleanupError):
    pass


class DeleteError(RegistryCleanupError):
    pass


@dataclass(frozen=True)
class Credentials:
    """Registry credentials for one run.

    Password mode (login exchange) is used when both username and password are
    set; otherwise ``token`` is sent as a pre-issued bearer token.
    """

    username: str = ""
    password: str = ""
    token: str = ""

    @property
    def uses_login(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class RepositoryId:
    namespace: str
    name: str

    @classmethod
    def parse(cls, entry: str, default_namespace: str) -> RepositoryId:
        """Parse ``name`` or ``namespace/name``."""
        entry = entry.strip().strip("/")
        if "/" in entry:
            namespace, name = entry.split("/", 1)
            return cls(namespace, name)
        if not default_namespace:
            raise ConfigError(f"No namespace given for repository '{entry}'")
        return cls(default_namespace, entry)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class Tag:
    """Tag metadata as returned by the registry tag listing."""

    name: str
    last_updated: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RetentionPolicy:
    keep_count: int
    substrings: tuple[str, ...] | None = None
    force_full_cleanup: bool = False


class RegistryClient(ABC):
    """Abstract base class for registry implementations."""

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings) -> RegistryClient:
        pass

    @abstractmethod
    def authenticate(self, credentials: Credentials) -> str:
        pass

    @abstractmethod
    def list_tags_page(
        self, repository: RepositoryId, cursor: str | None = None
    ) -> tuple[list[Tag], str | None]:
        pass

    @abstractmethod
    def delete_tag(self, repository: RepositoryId, tag_name: str) -> None:
        pass
