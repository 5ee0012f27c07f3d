import logging
import os
import signal
import sys
import threading
from typing import Optional

import uvicorn
from pydantic import ValidationError

from .config import Settings, get_settings
from .database import dispose_engine
from .lifecycle import Lifecycle
from .logging_config import setup_logging
from .main import create_app

logger = logging.getLogger(__name__)

STARTUP_FAILURE = 3


class GracefulServer(uvicorn.Server):
    """uvicorn server that drives a :class:`Lifecycle` and bounds shutdown time.

    The first termination signal moves the lifecycle to Draining and arms a
    watchdog; uvicorn then stops listening and runs the lifespan shutdown,
    which closes the database pool. If that takes longer than
    ``shutdown_timeout`` seconds the process exits forcibly.
    """

    def __init__(self, config: uvicorn.Config, lifecycle: Lifecycle, shutdown_timeout: float):
        super().__init__(config)
        self.lifecycle = lifecycle
        self.shutdown_timeout = shutdown_timeout
        self._watchdog: Optional[threading.Timer] = None

    def handle_exit(self, sig, frame) -> None:
        if self.lifecycle.begin_draining():
            try:
                name = signal.Signals(sig).name
            except ValueError:
                name = str(sig)
            logger.info("Received %s, shutting down gracefully...", name)
            self._arm_watchdog()
        super().handle_exit(sig, frame)

    def _arm_watchdog(self) -> None:
        self._watchdog = threading.Timer(self.shutdown_timeout, self._force_exit)
        self._watchdog.daemon = True
        self._watchdog.start()

    def _force_exit(self) -> None:
        logger.error("Forced shutdown after %.0fs timeout", self.shutdown_timeout)
        os._exit(1)

    def cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None


def load_settings() -> Optional[Settings]:
    """Build the settings, logging every problem instead of raising."""
    try:
        return get_settings()
    except ValidationError as exc:
        setup_logging()
        logger.error("Invalid configuration:")
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]).upper()
            logger.error("  %s: %s", field, error["msg"])
        return None


def serve(settings: Optional[Settings] = None) -> int:
    """Run the API until a termination signal; returns the process exit code."""
    settings = settings or load_settings()
    if settings is None:
        return 1

    setup_logging(settings.log_level)
    lifecycle = Lifecycle()
    app = create_app(settings, lifecycle)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        lifespan="on",
        timeout_graceful_shutdown=int(settings.shutdown_timeout),
    )
    server = GracefulServer(config, lifecycle, settings.shutdown_timeout)
    logger.info("Server is running on http://%s:%d", settings.host, settings.port)

    try:
        server.run()
    except SystemExit as exc:
        # uvicorn exits the process itself when it cannot bind the socket
        if server.started:
            raise
        logger.error("Server failed to start (exit status %s)", exc.code)
    except Exception:
        logger.exception("Error during shutdown")
        return 1
    finally:
        server.cancel_watchdog()
        dispose_engine()
        lifecycle.mark_stopped()

    if not server.started:
        return STARTUP_FAILURE
    logger.info("Server stopped")
    return 0


def main() -> None:
    sys.exit(serve())


if __name__ == "__main__":
    main()
