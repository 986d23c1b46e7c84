"""
Origin Fetcher Test Doubles

CountingFetcher stands in for the ad platform client seen by the cache
orchestrator (key -> payload). Errors are scripted per call.
"""

import asyncio
from typing import Any


class CountingFetcher:
    """
    Counts calls and replays a script of errors.

    Usage:
        fetcher = CountingFetcher(errors=[OriginNetworkError("reset"), None])
        # call 1 raises, call 2 returns {"key": key, "call": 2}
    """

    def __init__(self, result: Any = None, errors: list | None = None, delay: float = 0.0):
        self.calls = 0
        self.keys: list[str] = []
        self.result = result
        self.delay = delay
        self._errors = list(errors or [])

    async def __call__(self, key: str) -> Any:
        self.calls += 1
        self.keys.append(key)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._errors:
            error = self._errors.pop(0)
            if error is not None:
                raise error
        if self.result is not None:
            return self.result
        return {"key": key, "call": self.calls}


class MetricsFetcherStub:
    """Ad platform client double for the assessment service: (account_id, date_range) -> payload."""

    def __init__(self, payload: Any, errors: list | None = None):
        self.payload = payload
        self.calls: list[tuple[str, Any]] = []
        self._errors = list(errors or [])

    async def __call__(self, account_id: str, date_range) -> Any:
        self.calls.append((account_id, date_range))
        if self._errors:
            error = self._errors.pop(0)
            if error is not None:
                raise error
        return self.payload
