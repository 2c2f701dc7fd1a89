"""Tests for the request dispatch boundary."""

import os

import pytest

from kio.bridge import Operation, RequestContractError, SurfaceCommand
from kio.settings import EditorSettings
from kio.workspace import WatchEvent, WatchEventKind
from kio.workspace.results import DialogSelection


def collect(signal):
    received = []
    signal.connect(lambda *args: received.append(args if len(args) > 1 else args[0]))
    return received


class TestSynchronousCalls:
    """Test WorkspaceBridge.call."""

    def test_get_settings_returns_snapshot(self, bridge):
        result = bridge.call(Operation.GET_SETTINGS)

        assert result.ok
        assert result.value == EditorSettings()

    def test_update_then_get_settings(self, bridge):
        assert bridge.call("update-settings", settings={"theme": "light"}).ok
        assert bridge.call("update-settings", settings={"fontSize": 20}).ok

        settings = bridge.call(Operation.GET_SETTINGS).value
        assert settings.theme == "light"
        assert settings.font_size == 20
        assert settings.tab_size == EditorSettings().tab_size

    def test_write_then_read(self, bridge, tmp_path):
        path = str(tmp_path / "doc.md")

        assert bridge.call(Operation.WRITE_FILE, path=path, content="# title").ok
        result = bridge.call(Operation.READ_FILE, path=path)

        assert result.to_payload("content") == {"success": True, "content": "# title"}

    def test_read_missing_file_is_a_failure_result(self, bridge, tmp_path):
        result = bridge.call(Operation.READ_FILE, path=str(tmp_path / "missing"))

        assert not result.ok
        assert result.error

    def test_path_exists(self, bridge, tmp_path):
        assert bridge.call(Operation.PATH_EXISTS, path=str(tmp_path)).value is True
        assert bridge.call(Operation.PATH_EXISTS, path=str(tmp_path / "gone")).value is False

    def test_recent_files_operation(self, bridge, tmp_path):
        path = str(tmp_path / "recent.txt")
        bridge.call(Operation.WRITE_FILE, path=path, content="r")

        entries = bridge.call(Operation.RECENT_FILES).value

        assert [(entry.label, entry.path) for entry in entries] == [("recent.txt", path)]


class TestContractViolations:
    """Malformed requests fail fast instead of returning a result."""

    def test_unknown_operation(self, bridge):
        with pytest.raises(RequestContractError, match="Unknown operation"):
            bridge.submit("format-disk", {})

    def test_missing_argument(self, bridge):
        with pytest.raises(RequestContractError, match="missing argument"):
            bridge.submit(Operation.WRITE_FILE, {"path": "/tmp/x"})

    def test_unexpected_argument(self, bridge):
        with pytest.raises(RequestContractError, match="unexpected argument"):
            bridge.call(Operation.READ_FILE, path="/tmp/x", encoding="latin-1")

    def test_wrong_argument_type(self, bridge):
        with pytest.raises(RequestContractError, match="must be a string"):
            bridge.call(Operation.READ_FILE, path=b"/tmp/x")

    def test_bad_settings_key(self, bridge):
        with pytest.raises(RequestContractError, match="Unknown settings key"):
            bridge.submit(Operation.UPDATE_SETTINGS, {"settings": {"colour": "red"}})

    def test_unknown_surface_command(self, bridge):
        with pytest.raises(RequestContractError):
            bridge.send_command("launch-rockets")

    def test_submit_after_shutdown(self, bridge):
        bridge.shutdown()
        with pytest.raises(RuntimeError):
            bridge.submit(Operation.GET_SETTINGS)

    def test_call_after_shutdown(self, bridge, tmp_path):
        bridge.shutdown()
        with pytest.raises(RuntimeError):
            bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path))
        assert bridge.registry.watched_directories() == []


class TestAsynchronousRequests:
    """Test WorkspaceBridge.submit and response delivery."""

    def test_callback_receives_result(self, bridge, wait_until, tmp_path):
        path = tmp_path / "async.txt"
        path.write_text("payload", encoding="utf-8")
        results = []

        bridge.submit(Operation.READ_FILE, {"path": str(path)}, results.append)

        assert wait_until(lambda: results)
        assert results[0].ok
        assert results[0].value == "payload"

    def test_response_ready_carries_request_id(self, bridge, wait_until, tmp_path):
        responses = collect(bridge.response_ready)

        request_id = bridge.submit(Operation.LIST_DIRECTORY, {"path": str(tmp_path)})

        assert wait_until(lambda: responses)
        received_id, result = responses[0]
        assert received_id == request_id
        assert result.ok

    def test_many_requests_all_complete(self, bridge, wait_until, tmp_path):
        results = {}
        for index in range(20):
            path = str(tmp_path / f"file{index}.txt")
            bridge.submit(
                Operation.WRITE_FILE,
                {"path": path, "content": str(index)},
                lambda result, index=index: results.__setitem__(index, result),
            )

        assert wait_until(lambda: len(results) == 20)
        assert all(result.ok for result in results.values())
        assert len(bridge.store.get_all().recent_files) == 10

    def test_dialog_request_runs_on_main_thread(self, bridge, fake_dialogs, wait_until):
        fake_dialogs.selection = DialogSelection(canceled=False, paths=["/tmp/picked.py"])
        results = []

        bridge.submit(Operation.OPEN_FILE_DIALOG, {}, results.append)

        assert wait_until(lambda: results)
        assert results[0].value.first_path == "/tmp/picked.py"
        assert results[0].to_payload("result")["result"] == {"canceled": False, "filePaths": ["/tmp/picked.py"]}

    def test_save_dialog_receives_default_path(self, bridge, fake_dialogs, wait_until):
        results = []

        bridge.submit(Operation.SAVE_FILE_DIALOG, {"default_path": "/tmp/untitled.txt"}, results.append)

        assert wait_until(lambda: results)
        assert results[0].value.canceled
        assert fake_dialogs.calls == [("save_file", "/tmp/untitled.txt")]


class TestStartupSignal:
    """settings_loaded is pushed only after the surface reports ready."""

    def test_no_push_before_ready(self, bridge, qapp):
        pushed = collect(bridge.settings_loaded)
        qapp.processEvents()

        assert pushed == []
        assert not bridge.is_surface_ready()

    def test_push_on_ready(self, bridge):
        bridge.call(Operation.UPDATE_SETTINGS, settings={"zenMode": True})
        pushed = collect(bridge.settings_loaded)

        bridge.surface_ready()

        assert len(pushed) == 1
        assert pushed[0].zen_mode is True
        assert bridge.is_surface_ready()


class TestWatchEvents:
    """Watch events reach the surface through Qt signals."""

    def test_added_event_is_forwarded(self, bridge, wait_until, tmp_path):
        added = collect(bridge.file_added)
        combined = collect(bridge.watch_event)
        assert bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path)).ok
        target = str(tmp_path / "seen.txt")

        with open(target, "w", encoding="utf-8") as handle:
            handle.write("x")

        assert wait_until(lambda: target in added)
        assert ("added", target) in combined

    def test_write_file_into_watched_directory(self, bridge, wait_until, tmp_path):
        added = collect(bridge.file_added)
        changed = collect(bridge.file_changed)
        bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path))
        target = str(tmp_path / "saved_as.txt")

        assert bridge.call(Operation.WRITE_FILE, path=target, content="first").ok
        assert wait_until(lambda: target in added)

        assert bridge.call(Operation.WRITE_FILE, path=target, content="second").ok
        assert wait_until(lambda: target in changed)
        assert added.count(target) == 1

    def test_no_events_after_unwatch(self, bridge, wait_until, tmp_path):
        combined = collect(bridge.watch_event)
        bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path))
        bridge.call(Operation.UNWATCH_DIRECTORY, path=str(tmp_path))

        with open(tmp_path / "quiet.txt", "w", encoding="utf-8") as handle:
            handle.write("x")
        wait_until(lambda: False, timeout=0.5)

        assert combined == []

    def test_stale_handle_events_are_dropped(self, bridge, qapp):
        """Events queued by a watch that has since closed never reach the surface."""
        combined = collect(bridge.watch_event)

        bridge._on_watch_event(WatchEvent(WatchEventKind.ADDED, "/tmp/x", "/tmp", handle_id=9999))
        qapp.processEvents()

        assert combined == []

    def test_watch_failure_is_reported(self, bridge, tmp_path):
        result = bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path / "absent"))

        assert not result.ok
        assert bridge.registry.watched_directories() == []

    def test_surface_disconnect_closes_watches(self, bridge, tmp_path):
        bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path))

        bridge.surface_disconnected()

        assert bridge.registry.watched_directories() == []
        assert not bridge.is_surface_ready()

    def test_shutdown_closes_watches(self, bridge, tmp_path):
        bridge.call(Operation.WATCH_DIRECTORY, path=str(tmp_path))

        bridge.shutdown()
        bridge.shutdown()

        assert bridge.registry.watched_directories() == []


class TestCommands:
    """Menu actions reconstructed as command dispatch."""

    def test_send_command(self, bridge):
        issued = collect(bridge.command_issued)

        bridge.send_command(SurfaceCommand.TOGGLE_ZEN_MODE)
        bridge.send_command("save-file")

        assert issued == ["toggle-zen-mode", "save-file"]

    def test_open_file_emits_selection(self, bridge, fake_dialogs):
        fake_dialogs.selection = DialogSelection(canceled=False, paths=["/tmp/pick.txt"])
        requested = collect(bridge.open_file_requested)

        assert bridge.open_file() == "/tmp/pick.txt"
        assert requested == ["/tmp/pick.txt"]

    def test_cancelled_open_folder_emits_nothing(self, bridge):
        requested = collect(bridge.open_folder_requested)

        assert bridge.open_folder() is None
        assert requested == []

    def test_open_recent_existing_file(self, bridge, tmp_path):
        path = tmp_path / "there.txt"
        path.write_text("x", encoding="utf-8")
        requested = collect(bridge.open_file_requested)

        assert bridge.open_recent_file(str(path))
        assert requested == [str(path)]

    def test_open_recent_missing_file_notifies(self, bridge, tmp_path):
        missing = str(tmp_path / "gone.txt")
        errors = collect(bridge.error_notified)
        requested = collect(bridge.open_file_requested)

        assert not bridge.open_recent_file(missing)
        assert errors == [("Error", f"File not found: {missing}")]
        assert requested == []


def test_log_messages_are_emitted(bridge, tmp_path):
    messages = collect(bridge.log_message)

    bridge.call(Operation.READ_FILE, path=os.path.join(str(tmp_path), "missing"))

    assert any(message.startswith("[files]") for message in messages)
