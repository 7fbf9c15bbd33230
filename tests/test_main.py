"""Tests for application wiring in finder.main."""

import asyncio
import signal
from unittest.mock import AsyncMock, patch

import pytest

from finder import main
from finder.orchestrator import ScanOrchestrator


class TestSignalHandlers:
    """SIGINT/SIGTERM schedule orchestrator.stop() and keep the task alive."""

    @pytest.mark.asyncio
    async def test_stop_task_is_held_until_done(self) -> None:
        orchestrator = AsyncMock(spec=ScanOrchestrator)
        loop = asyncio.get_running_loop()

        with patch.object(loop, "add_signal_handler") as add_handler:
            main._setup_signal_handlers(orchestrator)

        registered = {call.args[0]: call.args[1] for call in add_handler.call_args_list}
        assert set(registered) == {signal.SIGINT, signal.SIGTERM}

        registered[signal.SIGTERM]()
        assert len(main._pending_tasks) == 1

        await asyncio.gather(*main._pending_tasks)
        await asyncio.sleep(0)

        orchestrator.stop.assert_awaited_once()
        assert main._pending_tasks == set()
