"""
Process-wide hooks installed once at the top of the bootstrap.

- Signal handlers that log termination signals, then exit through the
  normal interpreter shutdown so exit hooks still run
- A shutdown safeguard that flushes logs and halts the process if exit stalls

Neither is ever removed; both live for the whole process.
"""

import logging
import os
import signal
import sys
import threading

SIGNAL_NAMES = ("SIGTERM", "SIGHUP", "SIGINT")

# Exit status used when the safeguard has to halt the process
SAFEGUARD_EXIT_CODE = 239
DEFAULT_SAFEGUARD_DELAY = 5.0

_signal_handlers_registered = False
_safeguard_installed = False


def signal_exit_code(signum: int) -> int:
    """Shell convention for a process ended by a signal."""
    return 128 + signum


class SignalLogger:
    """Logs a signal, then defers to the handler it replaced.

    A replaced default action becomes a SystemExit, so shutdown hooks and
    log flushing run before the process ends.
    """

    def __init__(self, logger: logging.Logger, previous):
        self.logger = logger
        self.previous = previous

    def __call__(self, signum, frame):
        self.logger.info(
            f"RECEIVED SIGNAL {signum}: {signal.Signals(signum).name}. Shutting down as requested.",
            extra={"event": "signal_received"},
        )
        if callable(self.previous):
            self.previous(signum, frame)
        elif self.previous == signal.SIG_DFL:
            sys.exit(signal_exit_code(signum))


def register_signal_handlers(logger: logging.Logger) -> bool:
    """
    Install logging handlers for SIGTERM, SIGHUP and SIGINT.

    Returns:
        True if installed by this call, False if already installed
    """
    global _signal_handlers_registered
    if _signal_handlers_registered:
        return False

    registered = []
    for name in SIGNAL_NAMES:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            previous = signal.getsignal(signum)
            signal.signal(signum, SignalLogger(logger, previous))
            registered.append(name)
        except (ValueError, OSError) as e:
            logger.info(f"Error while registering signal handler for {name}: {e}")

    logger.info(f"Registered UNIX signal handlers for [{', '.join(registered)}]")
    _signal_handlers_registered = True
    return True


def _flush_handlers(logger: logging.Logger) -> None:
    for handler in logging.getLogger().handlers + logger.handlers:
        try:
            handler.flush()
        except (OSError, ValueError):
            pass


def install_shutdown_safeguard(
    logger: logging.Logger,
    delay: float = DEFAULT_SAFEGUARD_DELAY,
    register=threading._register_atexit,
) -> bool:
    """
    Install an exit hook that halts the process if shutdown stalls.

    The hook runs when interpreter shutdown starts, before non-daemon threads
    are joined. It arms a daemon timer; if the process is still alive after
    ``delay`` seconds it is halted with exit status 239.

    Returns:
        True if installed by this call, False if already installed
    """
    global _safeguard_installed
    if _safeguard_installed:
        return False

    def halt() -> None:
        logger.error(
            f"Process did not terminate within {delay} seconds after shutdown started. Halting."
        )
        _flush_handlers(logger)
        os._exit(SAFEGUARD_EXIT_CODE)

    def on_exit() -> None:
        timer = threading.Timer(delay, halt)
        timer.daemon = True
        timer.start()
        _flush_handlers(logger)

    register(on_exit)
    _safeguard_installed = True
    return True
