"""Process supervisor: launches the mpv player headless with a per-run
control socket, watches its lifetime, and tears it down."""
import asyncio
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from .config import (
    BASELINE_VOLUME,
    PROCESS_TERMINATE_TIMEOUT,
    SOCKET_POLL_ATTEMPTS,
    SOCKET_POLL_INTERVAL,
)
from .errors import ProcessExited, ProcessStartTimeout
from .events import Notifier

logger = logging.getLogger(__name__)


def default_socket_path() -> Path:
    """Per-run socket address; the pid keeps concurrent sessions apart."""
    return Path(tempfile.gettempdir()) / f"crestin-mpv-{os.getpid()}.sock"


class ProcessSupervisor:
    def __init__(
        self,
        binary: str,
        socket_path: Optional[Path] = None,
        volume: int = BASELINE_VOLUME,
        poll_interval: float = SOCKET_POLL_INTERVAL,
        poll_attempts: int = SOCKET_POLL_ATTEMPTS,
    ):
        self.binary = binary
        self.socket_path = Path(socket_path) if socket_path else default_socket_path()
        self.volume = volume
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.notifier = Notifier()
        self._proc: Optional[subprocess.Popen] = None
        self._watcher_task: Optional[asyncio.Task] = None
        self._quitting = False

    def command_line(self) -> list[str]:
        return [
            self.binary,
            "--no-video",
            "--no-terminal",
            "--idle=yes",
            f"--input-ipc-server={self.socket_path}",
            "--input-media-keys=yes",
            f"--volume={self.volume}",
        ]

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def start(self):
        """Launch the player and return once its control socket exists.

        Raises ProcessStartTimeout if the socket never appears, ProcessExited
        if the player dies while starting, OSError if it can't be launched.
        """
        self._remove_socket()
        self._quitting = False
        try:
            self._proc = subprocess.Popen(
                self.command_line(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error("Failed to launch %s: %s", self.binary, e)
            self.notifier.emit("error", e)
            raise

        # Reactive watcher: waits for the player to exit, then notifies
        proc = self._proc

        async def _watch():
            loop = asyncio.get_running_loop()
            code = await loop.run_in_executor(None, proc.wait)
            expected = self._quitting
            if expected:
                logger.info("Player exited with code %s", code)
            else:
                logger.error("Player exited unexpectedly with code %s", code)
            self.notifier.emit("exit", {"returncode": code, "expected": expected})

        self._watcher_task = asyncio.create_task(_watch())

        for _ in range(self.poll_attempts):
            if self._quitting:
                raise ProcessExited(proc.poll())
            if proc.poll() is not None:
                raise ProcessExited(proc.returncode)
            if self.socket_path.exists():
                logger.info("Player started (pid %s), socket %s", proc.pid, self.socket_path)
                return
            await asyncio.sleep(self.poll_interval)

        raise ProcessStartTimeout(
            f"Control socket {self.socket_path} did not appear after "
            f"{self.poll_attempts * self.poll_interval:.1f}s"
        )

    async def quit(self, client=None):
        """Shut down: graceful quit request, close socket, terminate, clean up.

        Each step runs even if an earlier one fails. Safe to call repeatedly
        and before start() has completed.
        """
        self._quitting = True
        if client is not None:
            try:
                await client.request_quit()
            except Exception as e:
                logger.warning("Graceful quit failed: %s", e)
            try:
                await client.close()
            except Exception as e:
                logger.warning("Closing control socket failed: %s", e)

        proc = self._proc
        self._proc = None
        if proc is not None:
            try:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self._terminate, proc)
            except OSError as e:
                logger.warning("Terminating player failed: %s", e)

        if self._watcher_task and not self._watcher_task.done():
            self._watcher_task.cancel()
        self._watcher_task = None
        self._remove_socket()

    @staticmethod
    def _terminate(proc: subprocess.Popen):
        if proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=PROCESS_TERMINATE_TIMEOUT)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()

    def _remove_socket(self):
        try:
            self.socket_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove socket %s: %s", self.socket_path, e)
