import os
from collections.abc import Callable, Iterator
from typing import Any

import pytest

# Monkeypatch coverage to bypass teardown crash in act/docker
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

    import coverage.collector

    def safe_stop(self: Any) -> None:
        if self in getattr(self, "_collectors", []):
            self._collectors.remove(self)

    coverage.collector.Collector.stop = safe_stop


@pytest.fixture  # type: ignore[misc]
def scripted_input(monkeypatch: pytest.MonkeyPatch) -> Callable[..., list[str]]:
    """Replaces `input()` with a fixed script; returns the prompts it was shown."""

    def install(*lines: str) -> list[str]:
        prompts: list[str] = []
        feed: Iterator[str] = iter(lines)

        def fake_input(prompt: str = "") -> str:
            prompts.append(prompt)
            return next(feed)

        monkeypatch.setattr("builtins.input", fake_input)
        return prompts

    return install
