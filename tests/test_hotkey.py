from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from hotkey import GlobalHotkeyAdapter


@patch("hotkey.keyboard")
def test_press_toggles_once_until_release(mock_keyboard: MagicMock) -> None:
    toggles: list[int] = []
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.alt_r")
    adapter.start(on_toggle=lambda: toggles.append(1))

    listener_kwargs = mock_keyboard.Listener.call_args.kwargs
    on_press = listener_kwargs["on_press"]
    on_release = listener_kwargs["on_release"]

    on_press("Key.alt_r")
    on_press("Key.alt_r")  # auto-repeat
    on_release("Key.alt_r")
    on_press("Key.alt_r")

    assert len(toggles) == 2
    mock_keyboard.Listener.return_value.start.assert_called_once()


@patch("hotkey.keyboard")
def test_other_keys_are_ignored(mock_keyboard: MagicMock) -> None:
    toggles: list[int] = []
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.alt_r")
    adapter.start(on_toggle=lambda: toggles.append(1))

    mock_keyboard.Listener.call_args.kwargs["on_press"]("Key.shift")
    assert toggles == []


@patch("hotkey.keyboard")
def test_stop_stops_listener(mock_keyboard: MagicMock) -> None:
    adapter = GlobalHotkeyAdapter()
    adapter.start(on_toggle=lambda: None)
    adapter.stop()
    adapter.stop()

    mock_keyboard.Listener.return_value.stop.assert_called_once()


def test_start_without_pynput(monkeypatch: pytest.MonkeyPatch) -> None:
    import hotkey as hotkey_mod

    monkeypatch.setattr(hotkey_mod, "keyboard", None)
    with pytest.raises(RuntimeError, match="pynput is not installed"):
        GlobalHotkeyAdapter().start(on_toggle=lambda: None)
