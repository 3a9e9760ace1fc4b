import argparse
import asyncio
import logging
from datetime import datetime, timezone

from .client import GitHubClient
from .config import Settings, settings
from .models import HarvestSnapshot
from .storage import save_snapshot

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Harvest repository metadata from the GitHub GraphQL API"
    )
    p.add_argument(
        "owner",
        nargs="?",
        default=settings.owner,
        help="Organization to harvest",
    )
    p.add_argument(
        "--repo",
        default=None,
        help="Only harvest this repository of the owner",
    )
    p.add_argument(
        "--output",
        default=settings.output_file,
        help="Where to write the JSON snapshot",
    )
    p.add_argument(
        "--include-private",
        action="store_true",
        default=settings.include_private,
        help="Keep private repositories in the output",
    )
    p.add_argument(
        "--skip-invalid",
        action="store_true",
        default=settings.skip_invalid_records,
        help="Skip repositories that cannot be normalized instead of aborting",
    )
    p.add_argument(
        "--page-delay",
        type=float,
        default=settings.page_delay_seconds,
        help="Seconds to wait between pages",
    )
    return p.parse_args(argv)


def build_settings(args) -> Settings:
    """Apply command line overrides on top of the environment settings."""
    return settings.model_copy(
        update={
            "owner": args.owner,
            "output_file": args.output,
            "include_private": args.include_private,
            "skip_invalid_records": args.skip_invalid,
            "page_delay_seconds": args.page_delay,
        }
    )


async def run(argv=None):
    """
    Harvest one owner (or one repository) and save the snapshot.

    Errors are logged and re-raised so the process exits non-zero.
    """
    args = parse_args(argv)
    config = build_settings(args)
    started_at = datetime.now(timezone.utc)

    target = f"{config.owner}/{args.repo}" if args.repo else config.owner
    logger.info(f"🚀 Starting GitHub harvester for {target}")

    try:
        async with GitHubClient(config=config) as client:
            if not await client.test_connection():
                logger.error("❌ GitHub API connection test failed")
                return None

            if args.repo:
                repositories = [await client.fetch_repository(config.owner, args.repo)]
            else:
                result = await client.crawl(config.owner)
                repositories = result.repositories

            logger.info(f"📊 {len(repositories)} repositories retrieved")
            snapshot = HarvestSnapshot(fetched_at=started_at, repositories=repositories)
            return save_snapshot(snapshot, config.output_file)

    except Exception as e:
        logger.error(f"❌ Harvest failed: {e}")
        raise


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
