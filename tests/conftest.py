"""Common test fixtures and utilities."""
import asyncio
from typing import Dict, Iterable, List

import pytest

from subkrek import Reason, ValidationOutcome

APEX = "example.com"


class RecordingReporter:
    """Reporter that keeps every event it receives."""
    def __init__(self):
        self.events: List = []

    def handle(self, event) -> None:
        self.events.append(event)

    def of_type(self, cls) -> List:
        return [e for e in self.events if isinstance(e, cls)]


class FakeResolver:
    def __init__(self, table: Dict[str, List[str]]):
        self.table = table
        self.lookups: List[str] = []

    async def resolve(self, hostname: str) -> List[str]:
        self.lookups.append(hostname)
        return list(self.table.get(hostname, []))


class ScriptedProber:
    """Prober with scripted outcomes that tracks how many probes run at once."""
    def __init__(self, delay: float = 0.0, valid: Iterable[str] = (), block: Iterable[str] = (),
                 reason: Reason = Reason.REFUSED):
        self.delay = delay
        self.valid = set(valid)
        self.block = set(block)
        self.reason = reason
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: List[str] = []

    async def __call__(self, hostname: str) -> ValidationOutcome:
        self.calls.append(hostname)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if hostname in self.block:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if hostname in self.valid:
            return ValidationOutcome.valid(hostname, self.delay, 443)
        return ValidationOutcome.invalid(hostname, self.delay, self.reason)


def hostnames(count: int, apex: str = APEX) -> List[str]:
    return [f"host{i:02d}.{apex}" for i in range(count)]


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def wordlist(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("# common prefixes\nwww\nmail\n\nftp\n", encoding="utf-8")
    return str(path)
