"""Player session: one supervised player process, its control socket, the
controller and the stream selector, started and torn down together."""
import logging
from typing import Optional

from .config import BASELINE_VOLUME
from .errors import Disconnected, ProcessExited
from .events import Notifier
from .ipc import IPCClient
from .player import PlaybackController
from .streams import StreamSelector
from .supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


class PlayerSession:
    """Notifications (via .notifier): ``failure`` with the ProcessExited error."""

    def __init__(self, binary: str, volume: int = BASELINE_VOLUME, supervisor: Optional[ProcessSupervisor] = None):
        self.supervisor = supervisor or ProcessSupervisor(binary)
        self.client = IPCClient()
        self.controller = PlaybackController(self.client, supervisor=self.supervisor)
        self.selector = StreamSelector(self.controller)
        self.notifier = Notifier()
        self.failure: Optional[ProcessExited] = None
        self._initial_volume = volume
        self._closed = False
        self.supervisor.notifier.subscribe("exit", self._on_exit)

    async def start(self):
        """Raises Disconnected if quit() runs before start-up finishes."""
        await self.supervisor.start()
        if self._closed:
            raise Disconnected("Session closed during start-up")
        await self.client.connect(str(self.supervisor.socket_path))
        await self.controller.setup_observers()
        if self._initial_volume != self.supervisor.volume:
            await self.controller.set_volume(self._initial_volume)

    async def quit(self):
        if self._closed:
            return
        self._closed = True
        await self.controller.quit()
        logger.info("Session closed")

    def _on_exit(self, info: dict):
        if info.get("expected") or self._closed:
            return
        self.failure = ProcessExited(info.get("returncode"))
        self.notifier.emit("failure", self.failure)
