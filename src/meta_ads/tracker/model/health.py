import asyncio


class HealthGauge:
    """
    A makeshift health check.

    Failures outside of regular flow control (provider outages, database write errors) increment the gauge with
    ``womp``. A background task decrements it once per tick. When a burst of failures pushes the value past the
    threshold, ``is_healthy`` returns false and the readiness probe starts failing.
    """

    def __init__(self, value: int = 0, health_threshold: int = 100) -> None:
        self._value = value
        self._health_threshold = health_threshold
        self._lock = asyncio.Lock()

    async def womp(self, d=1) -> int:
        async with self._lock:
            self._value += int(d)
            return self._value

    async def tick(self) -> None:
        async with self._lock:
            if self._value > 0:
                self._value -= 1

    async def is_healthy(self) -> bool:
        async with self._lock:
            return self._value <= self._health_threshold

    @property
    def value(self) -> int:
        return self._value
