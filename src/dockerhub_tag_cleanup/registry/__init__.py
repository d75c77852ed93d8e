from __future__ import annotations

from dockerhub_tag_cleanup.base import RegistryClient, Tag
from dockerhub_tag_cleanup.settings import Settings

from .dockerhub import DockerHubClient

__all__ = [
    "Tag",
    "RegistryClient",
    "DockerHubClient",
    "init_registry",
]


def init_registry(settings: Settings) -> tuple[RegistryClient, str]:
    registry_type = settings.registry_type.lower()
    registries: dict[str, type[RegistryClient]] = {
        "dockerhub": DockerHubClient,
    }
    if registry_type not in registries:
        raise ValueError(
            f"registry_type must be one of {list(registries.keys())}, got '{registry_type}'"
        )
    registry_class = registries[registry_type]
    registry = registry_class.from_settings(settings)
    mode = "login" if settings.credentials().uses_login else "token"
    info = f"{registry_type.upper()}: {settings.registry_url} ({mode} auth)"
    return registry, info
