"""Core logic for Docker Hub tag cleanup."""

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TypeVar

from loguru import logger

from dockerhub_tag_cleanup.base import (
    ConfigError,
    Credentials,
    DeleteError,
    FetchError,
    RegistryClient,
    RepositoryId,
    RetentionPolicy,
    Tag,
)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class CleanupResult:
    """Outcome of cleaning up one repository."""

    repository: RepositoryId
    found: int = 0
    to_delete: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failures

    @property
    def kept(self) -> int:
        return self.found - len(self.to_delete)


def is_eligible_for_deletion(
    rank: int,
    keep_count: int,
    tag_name: str,
    substrings: Iterable[str] | None = None,
) -> bool:
    """Decide whether the tag at ``rank`` (0 = newest) may be deleted.

    The ``keep_count`` newest tags are always kept. Past that, a tag is eligible
    when no substrings are configured (``None``), or when its name contains at least one
    non-empty substring. Empty substrings are skipped with a warning; they would
    otherwise match every tag.
    """
    if rank < keep_count:
        return False

    if substrings is None:
        return True

    for substring in substrings:
        if not substring:
            logger.warning(
                "Ignoring empty substring: it would match every tag. "
                "Omit the substrings option to delete all old tags."
            )
            continue
        if substring in tag_name:
            return True
    return False


def select_tags_to_delete(tags: Sequence[Tag], policy: RetentionPolicy) -> list[str]:
    """Names of the tags eligible for deletion; ``tags`` must be newest first."""
    return [
        tag.name
        for rank, tag in enumerate(tags)
        if is_eligible_for_deletion(
            rank, policy.keep_count, tag.name, policy.substrings
        )
    ]


def fetch_all_tags(registry: RegistryClient, repository: RepositoryId) -> list[Tag]:
    """Collect every page of tags and return them sorted newest first."""
    tags: list[Tag] = []
    cursor: str | None = None

    while True:
        page, cursor = registry.list_tags_page(repository, cursor)
        tags = [*tags, *page]
        if cursor is None:
            break

    # Pages are usually ordered already; sort anyway so ranks never depend on it.
    return sorted(tags, key=lambda tag: tag.last_updated, reverse=True)


def validate_policy(policy: RetentionPolicy) -> None:
    if isinstance(policy.keep_count, bool) or not isinstance(policy.keep_count, int):
        raise ConfigError('Please be sure to set input "keep-last" as a number')
    if policy.keep_count < 1 and not policy.force_full_cleanup:
        raise ConfigError(
            'To delete all images please set input "force-full-cleanup" to true'
        )


def _settle(
    func: Callable[[T], R], items: Sequence[T], max_workers: int | None = None
) -> list[tuple[T, R | None, Exception | None]]:
    """Run ``func`` over ``items`` concurrently and wait for every call.

    Returns (item, result, error) per item in completion order. Only
    ``DeleteError`` and ``FetchError`` are captured; anything else propagates
    once all calls have finished.
    """
    if not items:
        return []

    workers = min(max_workers or len(items), len(items))
    outcomes: list[tuple[T, R | None, Exception | None]] = []
    unexpected: Exception | None = None

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(func, item): item for item in items}
        for future in as_completed(futures):
            item = futures[future]
            try:
                outcomes.append((item, future.result(), None))
            except (DeleteError, FetchError) as e:
                outcomes.append((item, None, e))
            except Exception as e:
                unexpected = unexpected or e

    if unexpected is not None:
        raise unexpected
    return outcomes


def cleanup_repository(
    registry: RegistryClient,
    repository: RepositoryId,
    policy: RetentionPolicy,
    max_workers: int | None = None,
    dry_run: bool = False,
) -> CleanupResult:
    result = CleanupResult(repository)

    try:
        tags = fetch_all_tags(registry, repository)
    except FetchError as e:
        logger.error(f"{repository}: {e}")
        result.error = str(e)
        return result

    result.found = len(tags)
    result.to_delete = select_tags_to_delete(tags, policy)
    logger.info(f"{repository}: found {len(tags)} tag(s)")
    doomed = set(result.to_delete)
    for rank, tag in enumerate(tags):
        action = "DELETE" if tag.name in doomed else "KEEP"
        logger.debug(f"{repository} [{rank}] tag '{tag.name}': {action}")

    if not result.to_delete:
        logger.info(f"{repository}: no tags to delete")
        return result

    logger.warning(
        f"{repository}: about to delete {len(result.to_delete)} tag(s): "
        f"{', '.join(result.to_delete)}"
    )
    if dry_run:
        logger.warning(f"DRY RUN: {repository}: nothing deleted")
        return result

    def _delete(tag_name: str) -> None:
        logger.warning(f"Deleting {repository}:{tag_name}")
        registry.delete_tag(repository, tag_name)

    for tag_name, _, error in _settle(_delete, result.to_delete, max_workers):
        if error is None:
            logger.info(f"Deleted {repository}:{tag_name}")
            result.deleted.append(tag_name)
        else:
            logger.error(str(error))
            result.failures.append((tag_name, str(error)))

    logger.info(
        f"{repository}: deleted {len(result.deleted)} tag(s), "
        f"{len(result.failures)} error(s)"
    )
    return result


def run(
    registry: RegistryClient,
    policy: RetentionPolicy,
    repositories: Sequence[RepositoryId],
    credentials: Credentials,
    max_workers: int | None = None,
    dry_run: bool = False,
) -> list[CleanupResult]:
    """Clean up every repository concurrently.

    Raises ``ConfigError`` for an unsafe policy before any request is made, and
    ``AuthError`` when the login exchange fails.
    """
    validate_policy(policy)
    if credentials.uses_login:
        registry.authenticate(credentials)

    def _cleanup(repository: RepositoryId) -> CleanupResult:
        return cleanup_repository(registry, repository, policy, max_workers, dry_run)

    outcomes = _settle(_cleanup, list(repositories), max_workers)
    results = [result for _, result, _ in outcomes if result is not None]
    results.sort(key=lambda r: repositories.index(r.repository))
    return results


def write_summary(results: Sequence[CleanupResult], dry_run: bool, path: str) -> None:
    """Write cleanup summary to GitHub Actions step summary."""
    if not path:
        return

    action = "To delete" if dry_run else "Deleted"
    mode = "Dry Run" if dry_run else "Live"

    with open(path, "a") as f:
        f.write(
            f"### Docker Hub Tag Cleanup\n\n"
            f"**Mode:** {mode}\n\n"
            f"| Repository | Tags | Kept | {action} | Errors |\n"
            f"|------------|------|------|----------|--------|\n"
        )
        for result in results:
            deleted = len(result.to_delete) if dry_run else len(result.deleted)
            errors = len(result.failures) + (1 if result.error else 0)
            f.write(
                f"| `{result.repository}` | {result.found} | {result.kept} "
                f"| {deleted} | {errors} |\n"
            )

        failed = [r for r in results if not r.success]
        if failed:
            f.write("\n**Errors**\n\n")
            for result in failed:
                if result.error:
                    f.write(f"- `{result.repository}`: {result.error}\n")
                for tag_name, message in result.failures:
                    f.write(f"- `{result.repository}:{tag_name}`: {message}\n")


def write_output(success: bool, path: str) -> None:
    """Set the ``success`` step output."""
    if not path:
        return
    with open(path, "a") as f:
        f.write(f"success={'true' if success else 'false'}\n")
