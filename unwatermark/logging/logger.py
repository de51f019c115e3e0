import logging
import sys

CONTEXT_FIELDS = ("item_id",)


class ContextFormatter(logging.Formatter):
    """Formatter that appends known structured fields, e.g. ``[item_id=3]``."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if hasattr(record, field)
        )
        return f"{line} [{context}]" if context else line


class Log:
    """Centralized logging for the pipeline and the interception agent.

    Keyword arguments are attached to the record as structured fields;
    ``item_id`` ties a line to the queue item it concerns.
    """

    _logger: logging.Logger = logging.getLogger("unwatermark")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(ContextFormatter("%(asctime)s [%(levelname)s] %(message)s"))
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log progress: queue changes, finished items, agent lifecycle."""
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log a failure that marked an item or the engine as failed."""
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a recoverable failure, e.g. an image left in its original state."""
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log per-chunk and per-file detail."""
        cls._logger.debug(message, extra=kwargs)
