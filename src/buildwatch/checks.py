from buildwatch.config import SETTINGS
from buildwatch.model import Check, HistoryDocument


def record_check(
    document: HistoryDocument, check: Check, max_checks: int = SETTINGS.MAX_CHECKS
) -> HistoryDocument:
    checks = [check, *document.checks]
    document.checks = checks[:max_checks]
    document.last_updated_at = check.checked_at
    return document
