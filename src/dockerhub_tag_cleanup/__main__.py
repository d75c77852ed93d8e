import sys

from loguru import logger
from pydantic import ValidationError

from dockerhub_tag_cleanup.base import AuthError, ConfigError
from dockerhub_tag_cleanup.logic import run, write_output, write_summary
from dockerhub_tag_cleanup.registry import init_registry
from dockerhub_tag_cleanup.settings import Settings


def main() -> int:
    try:
        settings = Settings()
    except ValidationError as e:
        logger.error(f"Error: {e}")
        return 1

    try:
        policy = settings.retention_policy()
        repositories = settings.repository_ids()
    except ConfigError as e:
        logger.error(f"Error: {e}")
        write_output(False, settings.github_output)
        return 1

    logger.info(
        f"Inputs | keep-last={policy.keep_count} | user={settings.user} | "
        f"repos={[str(r) for r in repositories]} | substrings={settings.substrings} | "
        f"Dry run: {settings.dry_run}"
    )

    try:
        registry, registry_info = init_registry(settings)
        logger.info(f"Registry: {registry_info}")
        results = run(
            registry,
            policy,
            repositories,
            settings.credentials(),
            max_workers=settings.max_concurrency,
            dry_run=settings.dry_run,
        )
    except (ValueError, ConfigError, AuthError) as e:
        logger.error(f"Error: {e}")
        write_output(False, settings.github_output)
        return 1

    success = all(result.success for result in results)
    failed = [str(result.repository) for result in results if not result.success]
    if failed:
        logger.error(f"Cleanup failed for: {', '.join(failed)}")
    else:
        logger.info(f"Cleaned up {len(results)} repositories")

    write_summary(results, settings.dry_run, settings.github_step_summary)
    write_output(success, settings.github_output)

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
