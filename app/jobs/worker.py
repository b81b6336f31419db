"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and delegates to the matching job. Remaining CLI args are passed
to the job.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from app.config import settings
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.jobs.history_replay_job import run_history_replay

logger = get_logger(__name__)

JobCoroutine = Callable[[list[str]], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "history_replay": run_history_replay,
}


def _resolve_job_name(argv: list[str]) -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if argv:
        return argv[0].strip().lower()
    return os.getenv("WORKER_JOB", "history_replay").strip().lower()


async def run_worker(job_name: str, args: list[str] | None = None) -> None:
    """Run the requested background job."""
    name = job_name.strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name](args or [])


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    argv = sys.argv[1:]
    job_name = _resolve_job_name(argv)
    asyncio.run(run_worker(job_name, argv[1:]))


if __name__ == "__main__":
    main()
