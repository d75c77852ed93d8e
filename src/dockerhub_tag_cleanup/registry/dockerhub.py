from __future__ import annotations

import threading
import time
from datetime import UTC, datetime
from typing import Any

import requests
from dateutil import parser as date_parser  # type: ignore[import-untyped]
from loguru import logger

from dockerhub_tag_cleanup.base import (
    AuthError,
    Credentials,
    DeleteError,
    FetchError,
    RegistryClient,
    RepositoryId,
    Tag,
)
from dockerhub_tag_cleanup.settings import Settings

PAGE_SIZE = 100
REQUEST_TIMEOUT = 30


class DockerHubClient(RegistryClient):
    """Docker Hub management API client.

    Required settings: user, and either username/password or token.

    In password mode the login token is cached for ``token_ttl_seconds`` and
    shared by all requests of the run; a ttl of 0 logs in before every request.
    """

    @classmethod
    def from_settings(cls, settings: Settings) -> DockerHubClient:
        credentials = settings.credentials()
        if not credentials.uses_login and not credentials.token:
            raise ValueError(
                "Missing Docker Hub credentials: set username/password or token"
            )
        return cls(
            settings.registry_url,
            credentials,
            token_ttl_seconds=settings.token_ttl_seconds,
        )

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        token_ttl_seconds: int = 300,
    ):
        self.base_url = base_url.rstrip("/")
        if not self.base_url.startswith("http"):
            self.base_url = f"https://{self.base_url}"
        self.credentials = credentials
        self.token_ttl_seconds = token_ttl_seconds
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def _get_api_url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def authenticate(self, credentials: Credentials) -> str:
        token = self._login(credentials)
        with self._token_lock:
            self._store_token(token)
        return token

    def _login(self, credentials: Credentials) -> str:
        try:
            response = requests.post(
                self._get_api_url("/users/login"),
                json={
                    "username": credentials.username,
                    "password": credentials.password,
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            token = response.json().get("token")
        except (requests.exceptions.RequestException, ValueError) as e:
            raise AuthError(
                f"Docker Hub login failed for {credentials.username}: {e}"
            ) from e
        if not token:
            raise AuthError(
                f"Docker Hub login returned no token for {credentials.username}"
            )
        return str(token)

    def _store_token(self, token: str) -> None:
        self._token = token
        self._token_expires_at = time.monotonic() + self.token_ttl_seconds

    def _bearer_token(self) -> str:
        if not self.credentials.uses_login:
            return self.credentials.token
        with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token
            token = self._login(self.credentials)
            self._store_token(token)
            return token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._bearer_token()}"}

    def list_tags_page(
        self, repository: RepositoryId, cursor: str | None = None
    ) -> tuple[list[Tag], str | None]:
        url = cursor or self._get_api_url(
            f"/repositories/{repository.namespace}/{repository.name}/tags"
        )
        params: dict[str, Any] | None = None if cursor else {"page_size": PAGE_SIZE}

        try:
            response = requests.get(
                url, headers=self._headers(), params=params, timeout=REQUEST_TIMEOUT
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise FetchError(f"Error listing tags for {repository}: {e}") from e

        try:
            tags = [
                Tag(
                    name=result["name"],
                    last_updated=self._parse_time(result.get("last_updated")),
                    metadata={"tag": result},
                )
                for result in data.get("results") or []
                if result.get("name")
            ]
            next_cursor = data.get("next") or None
        except (ValueError, KeyError, TypeError, AttributeError, OverflowError) as e:
            raise FetchError(f"Malformed tag page for {repository}: {e}") from e

        logger.debug(f"{repository}: fetched page with {len(tags)} tag(s)")
        return tags, next_cursor

    def delete_tag(self, repository: RepositoryId, tag_name: str) -> None:
        url = self._get_api_url(
            f"/repositories/{repository.namespace}/{repository.name}/tags/{tag_name}/"
        )
        try:
            response = requests.delete(
                url, headers=self._headers(), timeout=REQUEST_TIMEOUT
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DeleteError(f"Error deleting {repository}:{tag_name}: {e}") from e

    @staticmethod
    def _parse_time(time_str: str | datetime | None) -> datetime:
        if not time_str:
            return datetime.min.replace(tzinfo=UTC)
        parsed = date_parser.parse(time_str) if isinstance(time_str, str) else time_str
        return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed
