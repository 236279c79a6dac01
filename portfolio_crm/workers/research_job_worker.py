"""Research queue worker: drains QUEUED organization research jobs."""

import argparse
import asyncio
import logging
from typing import Optional

from portfolio_crm.core.config import settings
from portfolio_crm.db.session import async_session_maker, get_async_session_context
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.repositories.research_job_repository import ResearchJobRepository
from portfolio_crm.services.research_job_service import ResearchJobService
from portfolio_crm.services.research_providers import get_research_provider
from portfolio_crm.utils.time import elapsed_seconds, utc_now

logger = logging.getLogger("portfolio_crm.workers.research_job_worker")


async def run_worker(
    loop: bool,
    sleep_seconds: int,
    max_jobs: int,
    kind: Optional[OrganizationKind] = None,
    provider_name: Optional[str] = None,
) -> int:
    async with get_async_session_context() as session:
        queued = await ResearchJobRepository(session).count_queued(kind.value if kind else None)
    logger.info("worker_started queued=%s kind=%s loop=%s", queued, kind.value if kind else "-", loop)

    service = ResearchJobService(
        provider=get_research_provider(provider_name),
        session_factory=async_session_maker,
    )
    while True:
        started_at = utc_now()
        result = await service.run_queued_jobs(max_jobs=max_jobs, organization_kind=kind)
        if result.queued_checked:
            logger.info(
                "worker_batch checked=%s completed=%s failed=%s seconds=%s",
                result.queued_checked,
                result.completed,
                result.failed,
                elapsed_seconds(started_at),
            )

        if not loop:
            return 1 if result.failed else 0
        if not result.queued_checked:
            await asyncio.sleep(sleep_seconds)


def main() -> int:
    parser = argparse.ArgumentParser(description="Organization research worker")
    parser.add_argument("--once", action="store_true", help="Process one batch and exit")
    parser.add_argument("--loop", action="store_true", help="Run continuously")
    parser.add_argument("--sleep", type=int, default=2, help="Sleep seconds between polls when looping")
    parser.add_argument(
        "--max-jobs",
        type=int,
        default=settings.RESEARCH_MAX_JOBS_PER_BATCH,
        help="Jobs to process per batch",
    )
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in OrganizationKind],
        default=None,
        help="Only process jobs for this organization kind",
    )
    parser.add_argument("--provider", default=None, help="Research provider (openai or fixture)")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    loop_mode = args.loop and not args.once
    kind = OrganizationKind(args.kind) if args.kind else None
    return asyncio.run(
        run_worker(
            loop=loop_mode,
            sleep_seconds=args.sleep,
            max_jobs=max(1, args.max_jobs),
            kind=kind,
            provider_name=args.provider,
        )
    )


if __name__ == "__main__":
    raise SystemExit(main())
