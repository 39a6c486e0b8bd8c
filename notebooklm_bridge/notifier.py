"""User-visible status notifications, kept apart from the delivery logic."""

import abc
import enum
import logging


class Level(enum.Enum):
    PROGRESS = "progress"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self is not Level.PROGRESS


class Notifier(abc.ABC):
    @abc.abstractmethod
    def notify(self, message: str, level: Level = Level.PROGRESS) -> None:
        pass


class LogNotifier(Notifier):
    """Surfaces notifications through the logging setup (console and log file)."""

    _LOG_LEVELS = {
        Level.PROGRESS: logging.INFO,
        Level.SUCCESS: logging.INFO,
        Level.WARNING: logging.WARNING,
        Level.ERROR: logging.ERROR,
    }

    def __init__(self, name: str = "notebooklm_bridge.notices"):
        self.logger = logging.getLogger(name)

    def notify(self, message: str, level: Level = Level.PROGRESS) -> None:
        self.logger.log(self._LOG_LEVELS[level], message)
