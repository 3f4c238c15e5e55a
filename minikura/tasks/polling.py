"""
Boucle de polling commune aux contrôleurs et au réflecteur.

Le cycle suivant n'est planifié qu'une fois le précédent terminé (boucle + sleep),
jamais à cadence fixe : deux cycles d'une même boucle ne se chevauchent pas.
Les appels bloquants (base, API Kubernetes) tournent dans un thread via
asyncio.to_thread pour ne pas geler les autres boucles.
"""
import asyncio
import logging
from typing import Optional

from ..schemas import CycleResult


class PollingLoop:
    name = "polling-loop"

    def __init__(self, interval_seconds: float, logger: logging.Logger):
        self.interval_seconds = interval_seconds
        self.logger = logger
        self.last_cycle: Optional[CycleResult] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._sleep_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> str:
        return "running" if self._running else "stopped"

    def run_cycle(self) -> CycleResult:
        raise NotImplementedError

    async def _before_first_cycle(self) -> bool:
        """Préparation avant la boucle; False annule le démarrage."""
        return True

    def start(self) -> asyncio.Task:
        if self._running and self._task is not None:
            return self._task
        self._running = True
        self._task = asyncio.create_task(self._run(), name=self.name)
        return self._task

    async def stop(self) -> None:
        """Annule l'attente en cours; un cycle déjà lancé va jusqu'au bout."""
        if not self._running:
            return
        self._running = False
        if self._sleep_task is not None and not self._sleep_task.done():
            self._sleep_task.cancel()
        task, self._task = self._task, None
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.logger.info("loop_stopped", extra={"extra_fields": {"loop": self.name}})

    async def _run(self) -> None:
        self.logger.info(
            "loop_started",
            extra={"extra_fields": {"loop": self.name, "interval_seconds": self.interval_seconds}},
        )
        try:
            if not await self._before_first_cycle():
                return

            while self._running:
                try:
                    await asyncio.to_thread(self.run_cycle)
                except Exception:
                    # un cycle qui lève ne doit pas arrêter la boucle
                    self.logger.exception("cycle_crashed", extra={"extra_fields": {"loop": self.name}})
                if not self._running:
                    break
                self._sleep_task = asyncio.create_task(asyncio.sleep(self.interval_seconds))
                try:
                    await self._sleep_task
                except asyncio.CancelledError:
                    if self._running:
                        raise
                    break
                finally:
                    self._sleep_task = None
        finally:
            # quelle que soit la sortie, l'état ne doit plus annoncer "running"
            self._running = False
