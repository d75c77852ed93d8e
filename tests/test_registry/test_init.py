"""Tests for registry initialization."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from dockerhub_tag_cleanup.registry import DockerHubClient, init_registry
from dockerhub_tag_cleanup.settings import Settings


class TestInitRegistry:
    def test_init_dockerhub(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test Docker Hub registry initialization."""
        monkeypatch.setenv("INPUT_USER", "acme")
        monkeypatch.setenv("INPUT_PASSWORD", "secret")

        registry, info = init_registry(Settings())
        assert isinstance(registry, DockerHubClient)
        assert "DOCKERHUB" in info
        assert "login auth" in info
        assert "secret" not in info

    def test_init_invalid_registry(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test invalid registry type raises error."""
        monkeypatch.setenv("INPUT_REGISTRY_TYPE", "invalid")
        monkeypatch.setenv("INPUT_TOKEN", "tok")

        with pytest.raises(ValueError, match="registry_type"):
            init_registry(Settings())
