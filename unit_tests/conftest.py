import asyncio
import pytest
import sys
from pathlib import Path

# Add root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tools.gemini_transport import Success, Timeout


class ScriptedTransport:
    """
    Stands in for GeminiTransport without any network.

    Replays `outcomes` in order (the last one repeats). An Exception instance
    in the script is raised instead of returned. Every request is recorded.
    """
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [Success("ok")]
        self.calls = []

    async def send(self, request, timeout_s):
        self.calls.append((request, timeout_s))
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def prompts(self):
        return [req.contents[-1]["parts"][0]["text"] for req, _ in self.calls]


class SlowTransport:
    """Honors its timeout the way GeminiTransport does: waits, then reports Timeout."""
    def __init__(self, delay_s=5.0):
        self.delay_s = delay_s
        self.calls = []

    async def send(self, request, timeout_s):
        self.calls.append((request, timeout_s))
        try:
            await asyncio.wait_for(asyncio.sleep(self.delay_s), timeout=min(timeout_s, 0.01))
        except asyncio.TimeoutError:
            return Timeout(timeout_s)
        return Success("late plan")


@pytest.fixture
def male_payload():
    return {
        "age": 30,
        "biologicalSex": "Male",
        "height": 180,
        "weight": 80,
        "fitnessExperience": "Intermediate (6 months - 2 years)",
        "fitnessGoals": "Weight loss",
        "dietaryRestrictions": "Vegetarian",
    }


@pytest.fixture
def scripted_transport():
    return ScriptedTransport


@pytest.fixture
def slow_transport():
    return SlowTransport
