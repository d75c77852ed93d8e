"""Tests for base module."""

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dockerhub_tag_cleanup.base import ConfigError, Credentials, RepositoryId, Tag


class TestTag:
    def test_tag_creation(self) -> None:
        updated = datetime.now(UTC)
        tag = Tag("v1.0.0", updated)
        assert tag.name == "v1.0.0"
        assert tag.last_updated == updated
        assert tag.metadata == {}


class TestRepositoryId:
    def test_parse_uses_default_namespace(self) -> None:
        repo = RepositoryId.parse("app", "acme")
        assert repo == RepositoryId("acme", "app")
        assert str(repo) == "acme/app"

    def test_parse_explicit_namespace(self) -> None:
        assert RepositoryId.parse(" other/app ", "acme") == RepositoryId("other", "app")

    def test_parse_without_namespace(self) -> None:
        with pytest.raises(ConfigError, match="namespace"):
            RepositoryId.parse("app", "")


class TestCredentials:
    def test_login_mode(self) -> None:
        assert Credentials("user", "secret").uses_login

    def test_token_mode(self) -> None:
        assert not Credentials("user", "", "token").uses_login
        assert not Credentials("", "secret", "token").uses_login
