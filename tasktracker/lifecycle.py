import enum
import logging
import threading
import time

logger = logging.getLogger(__name__)


class LifecycleState(str, enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class LifecycleError(RuntimeError):
    pass


_TRANSITIONS = {
    LifecycleState.RUNNING: {LifecycleState.DRAINING, LifecycleState.STOPPED},
    LifecycleState.DRAINING: {LifecycleState.STOPPED},
    LifecycleState.STOPPED: set(),
}


class Lifecycle:
    """Process state shared by the server and the application.

    Moves one way only: Running, then Draining once a shutdown signal
    arrives, then Stopped when every resource has been released.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._state = LifecycleState.RUNNING
        self.started_at = clock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def accepting_requests(self) -> bool:
        return self._state is LifecycleState.RUNNING

    def uptime(self) -> float:
        return self._clock() - self.started_at

    def _move(self, target: LifecycleState) -> bool:
        with self._lock:
            if self._state is target:
                return False
            if target not in _TRANSITIONS[self._state]:
                raise LifecycleError(f"cannot move from {self._state.value} to {target.value}")
            logger.info("Lifecycle %s -> %s", self._state.value, target.value)
            self._state = target
            return True

    def begin_draining(self) -> bool:
        """Stop accepting requests. Returns False if already draining."""
        if self._state is LifecycleState.STOPPED:
            return False
        return self._move(LifecycleState.DRAINING)

    def mark_stopped(self) -> bool:
        return self._move(LifecycleState.STOPPED)
