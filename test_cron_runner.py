import asyncio
from unittest.mock import patch

import httpx
import pytest

from conftest import StepClock, make_option
from cron_manager.clients.trigger_registry import DISABLED
from cron_manager.config import settings
from cron_manager.errors import NotFoundError
from cron_manager.schemas.cron import CronActionInput, CronStatus
from cron_manager.services.cron_log_service import CronLogService
from cron_manager.services.cron_runner import MAX_RESPONSE_BODY, CronRunner, acknowledgement

WORKSPACE = "1111222233334444"
USER = "9999888877776666"


class RecordingHandler:
    """httpx.MockTransport handler replaying a scripted list of responses."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, type) and issubclass(outcome, Exception):
            raise outcome("scripted failure", request=request)
        return httpx.Response(outcome, text=f"status {outcome}")


def _runner(crons, logs, cron_service, handler, clock=None):
    return CronRunner(
        crons,
        logs,
        cron_service,
        transport=httpx.MockTransport(handler),
        clock=clock or StepClock(),
    )


async def _create(cron_service, **overrides):
    return await cron_service.create_cron(WORKSPACE, USER, make_option(**overrides))


@pytest.mark.asyncio
async def test_successful_run_is_logged(crons, logs, cron_service):
    cron_id = await _create(
        cron_service,
        action=CronActionInput(
            type="fetch",
            url="https://example.com/hook",
            method="POST",
            headers={"X-Token": "abc"},
            body='{"ping": true}',
        ),
    )
    handler = RecordingHandler(200)

    result = await _runner(crons, logs, cron_service, handler).run(cron_id)

    assert result == acknowledgement()
    request = handler.requests[0]
    assert request.method == "POST"
    assert request.headers["X-Token"] == "abc"
    assert request.content == b'{"ping": true}'

    summaries, _ = logs.list_by_cron(cron_id)
    assert len(summaries) == 1
    assert summaries[0].success is True
    assert summaries[0].status == "200"

    detail = logs.get_log(cron_id, summaries[0].id)
    assert detail.response_body == "status 200"
    assert detail.action.url == "https://example.com/hook"
    assert detail.workspace_id == WORKSPACE
    assert detail.expire_at is not None


@pytest.mark.asyncio
async def test_failures_increment_counter(crons, logs, cron_service):
    cron_id = await _create(cron_service)
    runner = _runner(crons, logs, cron_service, RecordingHandler(500))

    for _ in range(3):
        await runner.run(cron_id)

    assert crons.get(cron_id).failed_count == 3
    summaries, _ = logs.list_by_cron(cron_id)
    assert [s.status for s in summaries] == ["500", "500", "500"]
    assert not any(s.success for s in summaries)


@pytest.mark.asyncio
async def test_success_resets_counter(crons, logs, cron_service):
    cron_id = await _create(cron_service)
    runner = _runner(crons, logs, cron_service, RecordingHandler(503, 503, 204))

    for _ in range(3):
        await runner.run(cron_id)

    assert crons.get(cron_id).failed_count == 0


@pytest.mark.asyncio
async def test_success_with_zero_failures_skips_reset(crons, logs, cron_service):
    cron_id = await _create(cron_service)
    runner = _runner(crons, logs, cron_service, RecordingHandler(200))

    with patch.object(crons, "reset_failed_count") as reset:
        await runner.run(cron_id)

    reset.assert_not_called()


@pytest.mark.asyncio
async def test_threshold_disables_without_calling_action(crons, logs, cron_service, triggers, store):
    cron_id = await _create(cron_service)
    store.update_item(crons.table, crons.key(cron_id), set_values={"FailedCount": 1440})
    handler = RecordingHandler(200)

    result = await _runner(crons, logs, cron_service, handler).run(cron_id)

    assert result == acknowledgement()
    assert handler.requests == []
    job = crons.get(cron_id)
    assert job.status == CronStatus.TOO_MANY_FAIL
    assert triggers.triggers[job.trigger_id].state == DISABLED
    assert logs.list_by_cron(cron_id) == ([], None)


@pytest.mark.asyncio
async def test_below_threshold_still_runs(crons, logs, cron_service, store):
    cron_id = await _create(cron_service)
    store.update_item(crons.table, crons.key(cron_id), set_values={"FailedCount": 1439})
    handler = RecordingHandler(500)

    await _runner(crons, logs, cron_service, handler).run(cron_id)

    assert len(handler.requests) == 1
    job = crons.get(cron_id)
    assert job.failed_count == 1440
    assert job.status == CronStatus.ENABLED


@pytest.mark.asyncio
async def test_timeout_is_recorded(crons, logs, cron_service):
    cron_id = await _create(cron_service)

    await _runner(crons, logs, cron_service, RecordingHandler(httpx.ReadTimeout)).run(cron_id)

    summary = logs.list_by_cron(cron_id)[0][0]
    assert summary.status == "Timeout"
    assert summary.success is False
    assert crons.get(cron_id).failed_count == 1


@pytest.mark.asyncio
async def test_transport_error_has_empty_status(crons, logs, cron_service):
    cron_id = await _create(cron_service)

    await _runner(crons, logs, cron_service, RecordingHandler(httpx.ConnectError)).run(cron_id)

    summary = logs.list_by_cron(cron_id)[0][0]
    assert summary.status == ""
    assert summary.success is False


@pytest.mark.asyncio
async def test_response_body_is_truncated(crons, logs, cron_service):
    cron_id = await _create(cron_service)

    def handler(request):
        return httpx.Response(200, text="x" * (MAX_RESPONSE_BODY * 2))

    await _runner(crons, logs, cron_service, handler).run(cron_id)

    summary = logs.list_by_cron(cron_id)[0][0]
    assert len(logs.get_log(cron_id, summary.id).response_body) == MAX_RESPONSE_BODY


@pytest.mark.asyncio
async def test_missing_job(crons, logs, cron_service):
    with pytest.raises(NotFoundError):
        await _runner(crons, logs, cron_service, RecordingHandler(200)).run("0000000000000000")


@pytest.mark.asyncio
async def test_history_and_daily_statistics(crons, logs, cron_service):
    cron_id = await _create(cron_service)
    runner = _runner(crons, logs, cron_service, RecordingHandler(200, 500, 200, 404))

    for _ in range(4):
        await runner.run(cron_id)

    page = CronLogService(logs).get_cron_logs(cron_id, limit=10)
    assert [s.status for s in page.logs] == ["404", "200", "500", "200"]
    assert page.cursor is None
    started = [s.started_at for s in page.logs]
    assert started == sorted(started, reverse=True)

    summary = CronLogService(logs).get_cron_statistic("2024-03-01", "2024-03-01")
    assert len(summary) == 1
    assert summary[0].success_count == 2
    assert summary[0].failed_count == 2
    assert crons.get(cron_id).failed_count == 1


class SlowTransport(httpx.AsyncBaseTransport):
    """Never answers within the action timeout."""

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200)


@pytest.mark.asyncio
async def test_slow_endpoint_hits_action_timeout(crons, logs, cron_service):
    cron_id = await _create(cron_service)
    config = settings.model_copy(update={"CRON_ACTION_TIMEOUT_SECONDS": 0.05})
    runner = CronRunner(crons, logs, cron_service, config=config, transport=SlowTransport(), clock=StepClock())

    result = await runner.run(cron_id)

    assert result == acknowledgement()
    summary = logs.list_by_cron(cron_id)[0][0]
    assert summary.status == "Timeout"
    assert summary.success is False
    assert summary.duration_ms < 1000
    assert crons.get(cron_id).failed_count == 1


@pytest.mark.asyncio
async def test_unsendable_headers_are_a_failed_run(crons, logs, cron_service, store):
    cron_id = await _create(cron_service)
    job = crons.get(cron_id)
    action = job.setting.action.model_copy(update={"headers": {"X-Name": "café"}})
    setting = job.setting.model_copy(update={"action": action})
    store.put_item(crons.table, crons.to_item(job.model_copy(update={"setting": setting})))
    handler = RecordingHandler(200)

    result = await _runner(crons, logs, cron_service, handler).run(cron_id)

    assert result == acknowledgement()
    assert handler.requests == []
    summaries, _ = logs.list_by_cron(cron_id)
    assert len(summaries) == 1
    assert summaries[0].status == ""
    assert summaries[0].success is False
    assert crons.get(cron_id).failed_count == 1
    daily = CronLogService(logs).get_cron_statistic("2024-03-01", "2024-03-01")
    assert daily[0].failed_count == 1
    assert daily[0].success_count == 0
