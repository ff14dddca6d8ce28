# tests/test_playback.py
import json
import os
import socket
import threading
import time

import pytest

from conftest import FakeClock
from guessify.playback import IPC_SUPPORTED, MpvPositionWatcher, PlaybackTicker, PreviewPlayer

needs_unix_sockets = pytest.mark.skipif(not IPC_SUPPORTED or os.name == "nt", reason="needs unix sockets")


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def silent_player(clock):
    return PreviewPlayer(mpv_path="/nonexistent/mpv", clock=clock)


def test_player_without_mpv_keeps_time():
    clock = FakeClock(50.0)
    player = silent_player(clock)
    assert not player.has_audio
    assert player.position() == 0.0

    player.play("https://p/1")
    clock.now = 52.5
    assert player.is_playing()
    assert player.position() == 2.5


def test_stop_rewinds_to_zero():
    clock = FakeClock()
    player = silent_player(clock)
    player.play("https://p/1")
    clock.now += 3

    player.stop()
    assert not player.is_playing()
    assert player.position() == 0.0


def test_play_restarts_position():
    clock = FakeClock()
    player = silent_player(clock)
    player.play("https://p/1")
    clock.now += 5

    player.play("https://p/2")
    assert player.position() == 0.0


def test_ticker_calls_back_until_cancelled():
    fired = threading.Event()
    calls = []

    def callback():
        calls.append(1)
        fired.set()

    ticker = PlaybackTicker(0.01, callback)
    ticker.start()
    assert fired.wait(timeout=2)

    ticker.cancel()
    assert ticker.cancelled


@needs_unix_sockets
def test_exited_mpv_is_not_playing(tmp_path):
    fake_mpv = tmp_path / "mpv"
    fake_mpv.write_text("#!/bin/sh\nexit 2\n")
    fake_mpv.chmod(0o755)

    player = PreviewPlayer(mpv_path=str(fake_mpv))
    assert player.has_audio
    player.play("https://p/1")

    assert wait_for(lambda: not player.is_playing())
    assert player.position() == 0.0
    player.stop()


@needs_unix_sockets
def test_watcher_reports_time_pos_from_mpv(tmp_path):
    socket_path = str(tmp_path / "ipc.sock")
    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    server.bind(socket_path)
    server.listen(1)
    received = []
    done = threading.Event()

    def fake_mpv():
        conn, _ = server.accept()
        with conn:
            received.append(conn.recv(4096))
            conn.sendall(b"not json\n")
            conn.sendall(json.dumps({"event": "property-change", "name": "time-pos", "data": None}).encode() + b"\n")
            conn.sendall(json.dumps({"event": "property-change", "name": "time-pos", "data": 0.75}).encode() + b"\n")
            done.wait(timeout=3)

    thread = threading.Thread(target=fake_mpv, daemon=True)
    thread.start()

    watcher = MpvPositionWatcher(socket_path, is_alive=lambda: True)
    assert watcher.position is None
    watcher.start()
    try:
        assert wait_for(lambda: watcher.position == 0.75)
        assert not watcher.failed
        command = json.loads(received[0])
        assert command["command"] == ["observe_property", 1, "time-pos"]
    finally:
        done.set()
        watcher.close()
        server.close()


@needs_unix_sockets
def test_watcher_fails_when_socket_never_appears(tmp_path):
    watcher = MpvPositionWatcher(str(tmp_path / "missing.sock"), is_alive=lambda: True, connect_timeout=0.1)
    watcher.start()

    assert wait_for(lambda: watcher.failed)
    assert watcher.position is None


@needs_unix_sockets
def test_watcher_gives_up_quietly_when_mpv_is_gone(tmp_path):
    watcher = MpvPositionWatcher(str(tmp_path / "missing.sock"), is_alive=lambda: False)
    watcher.start()
    watcher._thread.join(timeout=2)

    assert not watcher._thread.is_alive()
    assert not watcher.failed
