import json
from pathlib import Path

import pytest
import pytest_asyncio

from i18n_openai_sync.locks import FileLockStore
from i18n_openai_sync.status import StatusState
from i18n_openai_sync.stores import FileContentStore, FileLocationStore, FileCategory
from i18n_openai_sync.workspace import Workspace


class FakeHandle:
    def __init__(self, scheduler, due, callback):
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Virtual-time replacement for loop.call_later."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def __call__(self, delay, callback):
        handle = FakeHandle(self, self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds):
        self.now += seconds
        due = [h for h in self.handles if not h.cancelled and h.due <= self.now]
        for handle in due:
            self.handles.remove(handle)
            handle.callback()

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]


class RecordingStatus:
    def __init__(self):
        self.transitions = []
        self.state = StatusState.IDLE

    def set_state(self, state, message=""):
        self.state = state
        self.transitions.append((state, message))

    def set_idle(self):
        self.state = StatusState.IDLE
        self.transitions.append((StatusState.IDLE, ""))


class FakeProvider:
    """Records batches and 'translates' by looking values up in a table."""

    def __init__(self, table=None, error=None):
        self.table = table or {}
        self.error = error
        self.calls = []

    async def translate_batch(self, values, source_locale, target_locale):
        self.calls.append((list(values), source_locale, target_locale))
        if self.error is not None:
            raise self.error
        return [
            self.table.get((target_locale, value), f"[{target_locale}] {value}")
            for value in values
        ]


def write_json(path: Path, data, indent=2, trailing_newline=True) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, ensure_ascii=False, indent=indent)
    if trailing_newline:
        text += "\n"
    path.write_text(text, encoding="utf-8")
    return path


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def lock_store(scheduler):
    return FileLockStore(grace_delay=0.5, scheduler=scheduler)


@pytest.fixture
def status():
    return RecordingStatus()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def locales(tmp_path):
    """A workspace with en/fr/de copies of locales/<lng>/common.json."""
    root = tmp_path / "project"
    locales_dir = root / "locales"
    write_json(locales_dir / "en" / "common.json", {"common": {"save": "Save"}})
    write_json(locales_dir / "fr" / "common.json", {"common": {"save": "Enregistrer"}})
    write_json(locales_dir / "de" / "common.json", {"common": {"save": "Speichern"}})
    return locales_dir


@pytest.fixture
def workspace(locales):
    return Workspace(locales.parent)


@pytest.fixture
def location_store(workspace):
    store = FileLocationStore()
    store.scan(workspace, ["locales/*/*.json"], FileCategory.TRANSLATION)
    return store


@pytest_asyncio.fixture
async def content_store(workspace, location_store):
    store = FileContentStore(workspace)
    await store.initialize(location_store.files(FileCategory.TRANSLATION))
    return store
