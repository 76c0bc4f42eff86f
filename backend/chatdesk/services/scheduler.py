"""Ciclo periódico en segundo plano: barrido de inactividad y aviso diario."""

from __future__ import annotations

import asyncio
from datetime import datetime

from chatdesk.core.clock import Clock, SystemClock
from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, log_event
from chatdesk.services.conversation_sweeper import ConversationSweeper, SweepResult
from chatdesk.services.reminder_scheduler import ReminderScheduler

logger = get_logger("chatdesk.scheduler")


class BackgroundScheduler:
    """Ejecuta `sweep` y luego `run_daily_pass` cada `interval_seconds`.

    El primer ciclo ocurre tras un intervalo completo. Un error en una etapa se
    registra y no impide la otra ni los ciclos siguientes.
    """

    def __init__(
        self,
        sweeper: ConversationSweeper,
        reminders: ReminderScheduler,
        *,
        interval_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._sweeper = sweeper
        self._reminders = reminders
        self._interval = interval_seconds or settings.scheduler_interval_seconds
        self._clock = clock or SystemClock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Inicia el ciclo una única vez por instancia."""
        if self._task is not None:
            return False
        self._task = asyncio.create_task(self._run(), name="background-scheduler")
        log_event(logger, "scheduler.started", interval_seconds=self._interval)
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log_event(logger, "scheduler.stopped")

    async def tick(self, now: datetime | None = None) -> SweepResult | None:
        now = now or self._clock.now()
        result: SweepResult | None = None
        try:
            result = await self._sweeper.sweep(now)
        except Exception as exc:  # noqa: BLE001 - el ciclo continúa en la siguiente vuelta
            logger.exception("scheduler.sweep_failed", extra={"error": str(exc)})
        try:
            await self._reminders.run_daily_pass(now)
        except Exception as exc:  # noqa: BLE001 - la marca diaria no avanza y se reintenta
            logger.exception("scheduler.daily_pass_failed", extra={"error": str(exc)})
        return result

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.tick()
