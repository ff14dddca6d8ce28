"""Preview-clip playback through mpv and the position-polling ticker."""

import json
import logging
import os
import shutil
import socket
import subprocess
import tempfile
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

MPV_ARGS = ("--no-video", "--audio-display=no", "--terminal=no", "--msg-level=all=warn")
STOP_TIMEOUT_SECONDS = 1.0
IPC_CONNECT_TIMEOUT_SECONDS = 3.0
IPC_RETRY_INTERVAL_SECONDS = 0.05
IPC_SUPPORTED = hasattr(socket, "AF_UNIX")
OBSERVE_TIME_POS = (json.dumps({"command": ["observe_property", 1, "time-pos"]}) + "\n").encode("utf-8")


def find_mpv_binary(preferred_path: str | None = None) -> str | None:
    """Resolve the mpv binary from an explicit path or PATH."""
    return shutil.which(preferred_path or "mpv")


class MpvPositionWatcher:
    """Follow mpv's ``time-pos`` property over its JSON IPC socket.

    ``position`` stays None until mpv reports audio time. ``failed`` is set
    when the socket never became reachable while mpv was alive.
    """

    def __init__(
        self,
        socket_path: str,
        is_alive: Callable[[], bool],
        connect_timeout: float = IPC_CONNECT_TIMEOUT_SECONDS,
    ):
        self.socket_path = socket_path
        self._is_alive = is_alive
        self._connect_timeout = connect_timeout
        self._stopped = threading.Event()
        self._sock: socket.socket | None = None
        self._position: float | None = None
        self.failed = False
        self._thread = threading.Thread(target=self._run, name="guessify-mpv-ipc", daemon=True)

    @property
    def position(self) -> float | None:
        return self._position

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        self._stopped.set()
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()

    def _connect(self) -> socket.socket | None:
        deadline = time.monotonic() + self._connect_timeout
        while not self._stopped.is_set() and self._is_alive() and time.monotonic() < deadline:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.connect(self.socket_path)
                return sock
            except OSError:
                sock.close()
                self._stopped.wait(IPC_RETRY_INTERVAL_SECONDS)
        return None

    def _run(self) -> None:
        sock = self._connect()
        if sock is None:
            if not self._stopped.is_set():
                logger.warning("Could not reach mpv IPC socket %s", self.socket_path)
                self.failed = True
            return
        if self._stopped.is_set():
            sock.close()
            return

        self._sock = sock
        buffer = b""
        try:
            sock.sendall(OBSERVE_TIME_POS)
            while not self._stopped.is_set():
                chunk = sock.recv(4096)
                if not chunk:
                    break
                buffer += chunk
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    self._handle_line(line)
        except OSError as exc:
            if not self._stopped.is_set():
                logger.debug("mpv IPC connection closed: %s", exc)

    def _handle_line(self, line: bytes) -> None:
        try:
            message = json.loads(line.decode("utf-8", errors="replace"))
        except json.JSONDecodeError:
            return
        if not isinstance(message, dict):
            return
        if message.get("event") == "property-change" and message.get("name") == "time-pos":
            value = message.get("data")
            if isinstance(value, (int, float)):
                self._position = float(value)


class PreviewPlayer:
    """Play one preview URL at a time in an mpv subprocess.

    With mpv the position is the audio time mpv reports over IPC, so startup
    and download time do not count against a clip. Without an mpv binary, or
    when the IPC socket cannot be reached, the position is measured from the
    moment playback started and the game runs on that clock.
    """

    def __init__(self, mpv_path: str | None = None, clock: Callable[[], float] = time.monotonic):
        self._mpv_bin = find_mpv_binary(mpv_path)
        self._clock = clock
        self._proc: subprocess.Popen | None = None
        self._watcher: MpvPositionWatcher | None = None
        self._ipc_dir: str | None = None
        self._started_at: float | None = None

    @property
    def has_audio(self) -> bool:
        return self._mpv_bin is not None

    def play(self, url: str) -> None:
        """Start the clip from zero, replacing anything already playing."""
        self.stop()
        if self._mpv_bin:
            args = [self._mpv_bin, *MPV_ARGS]
            socket_path = self._ipc_socket_path()
            if socket_path:
                args.append(f"--input-ipc-server={socket_path}")
            args.append(url)

            self._proc = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            if socket_path:
                proc = self._proc
                self._watcher = MpvPositionWatcher(socket_path, is_alive=lambda: proc.poll() is None)
                self._watcher.start()
        self._started_at = self._clock()

    def stop(self) -> None:
        """Stop playback and rewind to zero."""
        self._started_at = None
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.close()

        proc, self._proc = self._proc, None
        if proc is None or proc.poll() is not None:
            return

        proc.terminate()
        try:
            proc.wait(timeout=STOP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("mpv did not exit after terminate; killing it")
            proc.kill()
            proc.wait()

    def position(self) -> float:
        """Seconds of the current clip played so far (0 when not playing)."""
        if not self.is_playing():
            return 0.0
        watcher = self._watcher
        if watcher is not None and not watcher.failed:
            return watcher.position or 0.0
        return self._clock() - self._started_at

    def is_playing(self) -> bool:
        if self._started_at is None:
            return False
        return self._proc is None or self._proc.poll() is None

    def _ipc_socket_path(self) -> str | None:
        if not IPC_SUPPORTED:
            return None
        if self._ipc_dir is None:
            self._ipc_dir = tempfile.mkdtemp(prefix="guessify-mpv-")
        path = os.path.join(self._ipc_dir, "ipc.sock")
        if os.path.exists(path):
            os.remove(path)
        return path


class PlaybackTicker:
    """Call ``callback`` every ``interval`` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self._callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name="guessify-playback-ticker", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            self._callback()
