"""Console notifier backed by the logging module."""
import logging

logger = logging.getLogger(__name__)


class LogNotifier:
    """Surface transient notifications through the application log."""

    async def send_alert(self, message: str, subject: str = "") -> bool:
        if subject:
            logger.warning("%s: %s", subject, message)
        else:
            logger.warning("%s", message)
        return True

    async def send_log(self, message: str, silent: bool = True) -> bool:
        logger.log(logging.DEBUG if silent else logging.INFO, "%s", message)
        return True
