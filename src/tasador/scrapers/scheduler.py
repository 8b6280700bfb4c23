"""
Scheduler de búsquedas contra las fuentes.

Limita cuántas búsquedas corren a la vez y cuántas pueden arrancar por
ventana de tiempo, para no saturar los portales ni disparar anti-bots.
"""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Iterable, TypeVar, Union

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class FetchScheduler:
    """
    Admite unidades de trabajo respetando dos límites:

    - concurrency: máximo de unidades corriendo en simultáneo
    - interval_cap por interval: máximo de admisiones nuevas por ventana

    El fallo de una unidad no cancela ni demora a las demás.
    """

    def __init__(
        self,
        concurrency: int = 3,
        interval: float = 0.5,
        interval_cap: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        if concurrency < 1 or interval_cap < 1:
            raise ValueError("concurrency e interval_cap deben ser >= 1")
        self.concurrency = concurrency
        self.interval = interval
        self.interval_cap = interval_cap
        self._clock = clock
        self._semaphore = asyncio.Semaphore(concurrency)
        self._admissions: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def _wait_for_admission(self) -> None:
        """Bloquea hasta que haya lugar en la ventana de admisión actual."""
        if self.interval <= 0:
            return

        while True:
            async with self._lock:
                now = self._clock()
                while self._admissions and now - self._admissions[0] >= self.interval:
                    self._admissions.popleft()

                if len(self._admissions) < self.interval_cap:
                    self._admissions.append(now)
                    return

                wait = self.interval - (now - self._admissions[0])

            await asyncio.sleep(max(wait, 0.0))

    async def submit(self, work: Callable[[], Awaitable[T]]) -> T:
        """Ejecuta una unidad de trabajo cuando ambos límites lo permiten."""
        async with self._semaphore:
            await self._wait_for_admission()
            return await work()

    async def run_all(
        self, works: Iterable[Callable[[], Awaitable[T]]]
    ) -> list[Union[T, Exception]]:
        """
        Envía todas las unidades a la vez y espera a que terminen.

        Las excepciones se devuelven en la posición de su unidad en vez de
        propagarse.
        """
        works = list(works)
        logger.debug("Scheduler: lanzando unidades", count=len(works))
        return await asyncio.gather(
            *(self.submit(work) for work in works),
            return_exceptions=True,
        )
