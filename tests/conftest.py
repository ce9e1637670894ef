"""
Shared fixtures for the chatpane test suite.

CHATPANE_HOME must point at a scratch directory before config_home is imported
anywhere, otherwise the tests would create ~/.chatpane on the machine running them.
"""

import itertools
import os
import tempfile

os.environ.setdefault("CHATPANE_HOME", tempfile.mkdtemp(prefix="chatpane-test-"))

import pytest  # noqa: E402

from conversation_store import ConversationStore  # noqa: E402
from models import ModelRegistry  # noqa: E402
from preferences import Preferences  # noqa: E402
from storage import MemoryStorage  # noqa: E402
from surface import MemorySurface  # noqa: E402


# ---------------------------------------------------------------------------
# Fake completion service
# ---------------------------------------------------------------------------


class FakeCompletionService:
    """
    Records every chat() call and streams the configured fragments.

    fail_on_call: raise from chat() itself (request rejected before streaming).
    fail_after:   raise while iterating, after that many fragments.
    """

    def __init__(self, fragments=None, fail_on_call=None, fail_after=None, error=None):
        self.fragments = list(fragments or [])
        self.fail_on_call = fail_on_call
        self.fail_after = fail_after
        self.error = error or RuntimeError("boom")
        self.calls = []
        self.before_each = None  # async callable run before each fragment is yielded

    async def chat(self, prompt, image=None, options=None):
        self.calls.append({"prompt": prompt, "image": image, "options": dict(options or {})})
        if self.fail_on_call:
            raise self.error
        return self._stream()

    async def _stream(self):
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i >= self.fail_after:
                raise self.error
            if self.before_each is not None:
                await self.before_each(i)
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise self.error


def make_id_factory(prefix="c"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def surface():
    return MemorySurface()


@pytest.fixture
def registry():
    # no path: the built-in catalog
    return ModelRegistry()


@pytest.fixture
def preferences(storage, registry):
    return Preferences(storage, registry)


@pytest.fixture
def store(storage, surface, preferences):
    return ConversationStore(
        storage,
        surface=surface,
        model_provider=lambda: preferences.model,
        id_factory=make_id_factory(),
    )


@pytest.fixture
def service():
    return FakeCompletionService(fragments=[{"text": "Hi"}, {"text": " there"}])
