"""
Debounced script execution for the editor: rapid edits collapse into one run
and only the newest scheduled run may publish its result.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Set

from designer.generation import GenerationCounter, GenerationToken
from designer.models import ScriptExecutionResult
from designer.script.sandbox import VALUE_MODE, ScriptSandbox

logger = logging.getLogger(__name__)


class ScriptRunner:
    def __init__(
        self,
        sandbox: ScriptSandbox,
        debounce_ms: int = 300,
        on_result: Optional[Callable[[ScriptExecutionResult], Any]] = None,
    ):
        self._sandbox = sandbox
        self._debounce = debounce_ms / 1000
        self._on_result = on_result
        self._generations = GenerationCounter()
        self._pending: Optional[asyncio.Task] = None
        self._executing: Set[asyncio.Task] = set()
        self.result: Optional[ScriptExecutionResult] = None
        self.discarded = 0

    def schedule(self, code: str, data: Any, mode: str = VALUE_MODE) -> GenerationToken:
        """(Re)start the debounce window for a new script or data change."""
        token = self._generations.next()
        pending = self._pending
        # a run already inside the interpreter finishes and its token drops it
        if pending is not None and not pending.done() and pending not in self._executing:
            pending.cancel()
        self._pending = asyncio.create_task(self._run_later(token, code, data, mode))
        return token

    async def _run_later(self, token: GenerationToken, code: str, data: Any, mode: str) -> None:
        await asyncio.sleep(self._debounce)
        # The interpreter can not be interrupted, so it runs off the loop and a
        # superseded result is dropped instead.
        task = asyncio.current_task()
        self._executing.add(task)
        try:
            result = await asyncio.to_thread(self._sandbox.execute, code, data, mode)
        finally:
            self._executing.discard(task)
        if not token.is_current():
            self.discarded += 1
            logger.debug(f"Discarding stale script result (generation {token.generation})")
            return
        self.result = result
        if self._on_result is not None:
            self._on_result(result)

    async def wait(self) -> Optional[ScriptExecutionResult]:
        """Wait for the most recently scheduled run to finish."""
        while self._pending is not None:
            task = self._pending
            try:
                await task
            except asyncio.CancelledError:
                pass
            if task is self._pending:
                break
        return self.result

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._generations.next()
