from unittest.mock import AsyncMock

import pytest

from app.features.gmail_webhook.domain.models import HistoryNotification, WebhookOutcome
from app.jobs import history_replay_job, worker


@pytest.mark.asyncio
async def test_run_worker_runs_job_with_args(monkeypatch):
    received = {}

    async def dummy_job(args):
        received["args"] = args

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy", ["a", "b"])

    assert received["args"] == ["a", "b"]


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_resolve_job_name_from_argv_or_env(monkeypatch):
    assert worker._resolve_job_name(["HISTORY_REPLAY", "x"]) == "history_replay"

    monkeypatch.setenv("WORKER_JOB", "custom")
    assert worker._resolve_job_name([]) == "custom"


def test_parse_replay_args():
    assert history_replay_job.parse_replay_args(["owner@example.com", "500"]) == (
        "owner@example.com",
        500,
        500,
    )
    assert history_replay_job.parse_replay_args(["owner@example.com", "500", "900"]) == (
        "owner@example.com",
        500,
        900,
    )


@pytest.mark.parametrize(
    "args",
    [[], ["owner@example.com"], ["owner@example.com", "abc"], ["owner@example.com", "900", "500"]],
)
def test_parse_replay_args_rejects_bad_input(args):
    with pytest.raises(ValueError):
        history_replay_job.parse_replay_args(args)


@pytest.mark.asyncio
async def test_replay_history_bypasses_cursor():
    service = AsyncMock()
    service.process_history_for_user.return_value = WebhookOutcome.PROCESSED

    outcome = await history_replay_job.replay_history("owner@example.com", 500, 900, service=service)

    assert outcome == WebhookOutcome.PROCESSED
    service.process_history_for_user.assert_awaited_once_with(
        HistoryNotification(email_address="owner@example.com", history_id=900),
        start_history_id=500,
    )
