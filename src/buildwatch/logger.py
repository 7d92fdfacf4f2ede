import logging

import notifiers.logging

from buildwatch.config import SETTINGS, Settings


class AlertFormatter(logging.Formatter):
    """Prefixes alert messages with the failed check status and page URL.

    Runner failures log with ``extra={"check_status": ..., "url": ...}``;
    records without them are formatted as usual.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        status = getattr(record, "check_status", None)
        if status is None:
            return message
        subject = f"buildwatch {status}"
        url = getattr(record, "url", None)
        if url is not None:
            subject += f" ({url})"
        return f"{subject}\n{message}"


def get_log_handlers(logger, settings: Settings = SETTINGS):
    if settings.TELEGRAM_TOKEN is None:
        return []

    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": settings.TELEGRAM_TOKEN,
            "chat_id": settings.TELEGRAM_CHAT_ID,
        },
    )
    handler.setLevel(logging.WARNING)
    handler.setFormatter(AlertFormatter("%(levelname)s - %(message)s"))
    logger.addHandler(handler)
    return [handler]
