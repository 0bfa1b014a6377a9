import asyncio

import pytest
import pytest_asyncio
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from conftest import write_json
from i18n_openai_sync.workspace import FileEvent, FileEventKind, Workspace, WorkspaceEventHandler


@pytest_asyncio.fixture
async def events(tmp_path):
    received = []
    workspace = Workspace(tmp_path)
    handler = WorkspaceEventHandler(
        asyncio.get_running_loop(),
        received.append,
        lambda path: workspace.matches(path, ["**/locales/*/*.json"]),
    )
    return handler, received


async def settle():
    for _ in range(3):
        await asyncio.sleep(0)


class TestWorkspace:
    async def test_read_and_write_keep_line_endings(self, tmp_path):
        workspace = Workspace(tmp_path)
        path = tmp_path / "en" / "common.json"
        path.parent.mkdir()

        await workspace.write_text(path, '{\r\n  "a": "b"\r\n}\r\n')

        assert path.read_bytes() == b'{\r\n  "a": "b"\r\n}\r\n'
        assert await workspace.read_text(path) == '{\r\n  "a": "b"\r\n}\r\n'

    async def test_read_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            await Workspace(tmp_path).read_text(tmp_path / "missing.json")

    def test_find_files_skips_excluded_directories(self, tmp_path):
        write_json(tmp_path / "locales" / "en" / "common.json", {})
        write_json(tmp_path / "node_modules" / "pkg" / "locales" / "en" / "common.json", {})
        write_json(tmp_path / ".next" / "locales" / "en" / "common.json", {})

        found = Workspace(tmp_path).find_files("**/locales/*/*.json")

        assert found == [(tmp_path / "locales" / "en" / "common.json").resolve()]

    def test_is_excluded(self, tmp_path):
        workspace = Workspace(tmp_path, exclude_dirs=["build"])
        assert workspace.is_excluded(tmp_path / "build" / "en" / "common.json")
        assert workspace.is_excluded(tmp_path.parent / "other.json")
        assert not workspace.is_excluded(tmp_path / "locales" / "en" / "build.json")


class TestWorkspaceEventHandler:
    """watchdog events are translated and delivered on the event loop."""

    async def test_modified_created_deleted(self, events, tmp_path):
        handler, received = events
        path = str(tmp_path / "locales" / "en" / "common.json")

        handler.dispatch(FileCreatedEvent(path))
        handler.dispatch(FileModifiedEvent(path))
        handler.dispatch(FileDeletedEvent(path))
        await settle()

        assert [e.kind for e in received] == [
            FileEventKind.CREATED,
            FileEventKind.CHANGED,
            FileEventKind.DELETED,
        ]
        assert all(e.path.name == "common.json" for e in received)

    async def test_non_matching_paths_are_ignored(self, events, tmp_path):
        handler, received = events

        handler.dispatch(FileModifiedEvent(str(tmp_path / "src" / "App.tsx")))
        handler.dispatch(FileModifiedEvent(str(tmp_path / "node_modules" / "locales" / "en" / "a.json")))
        handler.dispatch(DirModifiedEvent(str(tmp_path / "locales" / "en")))
        await settle()

        assert received == []

    async def test_move_is_delete_then_create(self, events, tmp_path):
        handler, received = events
        src = tmp_path / "locales" / "en" / "common.json"
        dest = tmp_path / "locales" / "en" / "shared.json"

        handler.dispatch(FileMovedEvent(str(src), str(dest)))
        await settle()

        assert received == [
            FileEvent(FileEventKind.DELETED, src),
            FileEvent(FileEventKind.CREATED, dest),
        ]

    async def test_rename_over_target_reports_target(self, events, tmp_path):
        handler, received = events
        tmp = tmp_path / "locales" / "en" / ".common.json.swp"
        target = tmp_path / "locales" / "en" / "common.json"

        handler.dispatch(FileMovedEvent(str(tmp), str(target)))
        await settle()

        assert received == [FileEvent(FileEventKind.CREATED, target)]


class TestWatching:
    async def test_stop_joins_observer(self, tmp_path):
        workspace = Workspace(tmp_path)
        workspace.watch(["**/*.json"], lambda event: None)
        assert workspace.is_watching

        await workspace.stop()
        assert not workspace.is_watching

        # Stopping again is a no-op
        await workspace.stop()

    def test_nested_globstar_is_honored_by_scan_and_match(self, tmp_path):
        deep = write_json(tmp_path / "src" / "app" / "feature" / "locales" / "en" / "common.json", {})
        shallow = write_json(tmp_path / "src" / "locales" / "en" / "common.json", {})
        workspace = Workspace(tmp_path)
        pattern = "src/**/locales/*/*.json"

        assert workspace.find_files(pattern) == sorted([deep.resolve(), shallow.resolve()])
        assert workspace.matches(deep, [pattern])
        assert workspace.matches(tmp_path / "src" / "x" / "y" / "locales" / "fr" / "new.json", [pattern])
        assert not workspace.matches(tmp_path / "lib" / "locales" / "en" / "common.json", [pattern])
