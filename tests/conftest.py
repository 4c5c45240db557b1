import pytest


class FakeRecorder:
    def __init__(self):
        self.events = []

    async def record(self, event, metadata=None, severity="info"):
        self.events.append((event, dict(metadata or {}), severity))

    async def recent(self, limit=15):
        return []

    def names(self):
        return [e[0] for e in self.events]


@pytest.fixture
def recorder():
    return FakeRecorder()
