"""
部件定时器：时钟、倒计时每秒刷新；日期、天数在所在时区的午夜后刷新。

每个部件 id 至多一个任务。部件删除或改配置时必须 cancel / restart，
否则旧任务会继续触发。
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from designer.models import ScreenWidget
from designer.rendering.timefmt import resolve_timezone, seconds_until_midnight

logger = logging.getLogger(__name__)

SECOND_KINDS = ("clock", "countdown")
MIDNIGHT_KINDS = ("date", "daysuntil")

TickCallback = Callable[[int], Any]


class WidgetTicker:
    def __init__(
        self,
        on_tick: TickCallback,
        local_timezone: Optional[str] = None,
        default_timezone: str = "UTC",
        tick_interval: float = 1.0,
    ):
        self._on_tick = on_tick
        self._local_timezone = local_timezone
        self._default_timezone = default_timezone
        self._tick_interval = tick_interval
        self._tasks: Dict[int, asyncio.Task] = {}

    @staticmethod
    def wants_timer(kind: Optional[str]) -> bool:
        return kind in SECOND_KINDS or kind in MIDNIGHT_KINDS

    def active_ids(self) -> List[int]:
        return [wid for wid, task in self._tasks.items() if not task.done()]

    def start(self, widget: ScreenWidget, kind: Optional[str]) -> bool:
        """Starts the widget's timer. Returns False for kinds that never refresh."""
        if not self.wants_timer(kind):
            return False
        self.cancel(widget.id)
        if kind in SECOND_KINDS:
            coro = self._every_second(widget.id)
        else:
            tz = resolve_timezone(widget.config.get("timezone"), self._local_timezone, self._default_timezone)
            coro = self._at_midnight(widget.id, tz)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug(f"[widget {widget.id}] no running loop, timer not started")
            return False
        self._tasks[widget.id] = loop.create_task(coro)
        logger.debug(f"[widget {widget.id}] {kind} timer started")
        return True

    def restart(self, widget: ScreenWidget, kind: Optional[str]) -> bool:
        self.cancel(widget.id)
        return self.start(widget, kind)

    def cancel(self, widget_id: int) -> bool:
        task = self._tasks.pop(widget_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug(f"[widget {widget_id}] timer cancelled")
        return True

    def cancel_all(self) -> None:
        for widget_id in list(self._tasks):
            self.cancel(widget_id)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self.cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fire(self, widget_id: int) -> None:
        try:
            result = self._on_tick(widget_id)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"[widget {widget_id}] tick callback failed: {e}")

    async def _every_second(self, widget_id: int) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            await self._fire(widget_id)

    async def _at_midnight(self, widget_id: int, tz: str) -> None:
        while True:
            delay = seconds_until_midnight(tz) + 1
            logger.debug(f"[widget {widget_id}] next refresh in {delay:.0f}s ({tz})")
            await asyncio.sleep(delay)
            await self._fire(widget_id)
