import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cron_manager import execute_cron
from cron_manager.errors import ValidationError
from cron_manager.services.cron_runner import acknowledgement


@pytest.mark.parametrize("event", [{}, {"cronId": ""}, {"cronId": 12}, "not json", None])
def test_event_without_cron_id(event):
    with pytest.raises(ValidationError):
        execute_cron.handler(event, None)


@pytest.mark.parametrize("event", [{"cronId": "1234"}, json.dumps({"cronId": "1234"})])
def test_handler_runs_job(event):
    runner = MagicMock()
    runner.run = AsyncMock(return_value=acknowledgement())

    with patch.object(execute_cron, "build_runner", return_value=runner):
        result = execute_cron.handler(event, None)

    runner.run.assert_awaited_once_with("1234")
    assert result == {"statusCode": 200, "body": '"OK"'}
