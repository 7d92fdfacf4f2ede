"""One fetch-extract-reconcile-record cycle against the history file.

Every run ends in exactly one terminal status and, whatever that status is,
writes a check record to the history before returning. Expected failures are
converted into checks inside ``run_once``; ``run`` adds the last-resort handler
for anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Awaitable, Callable

from buildwatch.checks import record_check
from buildwatch.clock import utcnow_iso
from buildwatch.config import SETTINGS
from buildwatch.errors import FetchError
from buildwatch.extract import ConfigNotFound, ConfigParseError, extract_config
from buildwatch.fetch import PageResponse
from buildwatch.metric import check_counter, known_builds, new_build_counter, run_duration
from buildwatch.model import Check, CheckStatus
from buildwatch.reconcile import MissingBuildInfo, reconcile
from buildwatch.store import HistoryStore

logger = logging.getLogger("buildwatch")

Fetcher = Callable[[str], Awaitable[PageResponse]]
Clock = Callable[[], str]
Timer = Callable[[], float]


@dataclass(frozen=True)
class RunResult:
    check: Check

    @property
    def status(self) -> CheckStatus:
        return self.check.status

    @property
    def exit_code(self) -> int:
        return 0 if self.check.status == CheckStatus.OK else 1


def _elapsed_ms(started: float, timer: Timer) -> int:
    return max(0, int((timer() - started) * 1000))


def _alert_context(status: CheckStatus, url: str) -> dict:
    return {"check_status": status.value, "url": url}


def _observe(result: RunResult) -> RunResult:
    check_counter.labels(status=result.status.value).inc()
    run_duration.set(result.check.duration_ms / 1000)
    return result


async def run_once(
    store: HistoryStore,
    fetcher: Fetcher,
    url: str,
    *,
    clock: Clock = utcnow_iso,
    timer: Timer = time.monotonic,
    max_checks: int = SETTINGS.MAX_CHECKS,
    marker_id: str = SETTINGS.MARKER_ID,
) -> RunResult:
    started = timer()
    document = store.load(clock())

    def finish(status: CheckStatus, **fields) -> RunResult:
        check = Check(
            checked_at=clock(),
            status=status,
            duration_ms=_elapsed_ms(started, timer),
            **fields,
        )
        record_check(document, check, max_checks)
        store.save(document)
        return _observe(RunResult(check))

    try:
        response = await fetcher(url)
    except FetchError as exc:
        logger.error(
            "Failed to fetch %s: %s",
            url,
            exc,
            extra=_alert_context(CheckStatus.NETWORK_ERROR, url),
        )
        return finish(CheckStatus.NETWORK_ERROR, error_message=str(exc))

    if not response.ok:
        message = f"{response.status} {response.reason}".strip()
        logger.error(
            "Failed to fetch %s: %s",
            url,
            message,
            extra=_alert_context(CheckStatus.HTTP_ERROR, url),
        )
        return finish(
            CheckStatus.HTTP_ERROR,
            http_status=response.status,
            error_message=message,
        )

    extracted = extract_config(response.body, marker_id)
    if isinstance(extracted, ConfigNotFound):
        logger.error(
            "Config block %r not found in page",
            extracted.marker_id,
            extra=_alert_context(CheckStatus.PARSE_ERROR, url),
        )
        return finish(
            CheckStatus.PARSE_ERROR,
            http_status=response.status,
            error_message="Failed to extract config from HTML",
        )
    if isinstance(extracted, ConfigParseError):
        logger.error(
            "%s", extracted.message, extra=_alert_context(CheckStatus.PARSE_ERROR, url)
        )
        return finish(
            CheckStatus.PARSE_ERROR,
            http_status=response.status,
            error_message=extracted.message,
        )

    logger.debug("Extracted config: %s", extracted.payload)

    document, outcome = reconcile(document, extracted.payload, clock())
    if isinstance(outcome, MissingBuildInfo):
        logger.error(
            "Could not find build information: %s",
            outcome.reason,
            extra=_alert_context(CheckStatus.MISSING_BUILD_INFO, url),
        )
        return finish(
            CheckStatus.MISSING_BUILD_INFO,
            http_status=response.status,
            error_message=outcome.reason,
        )

    if outcome.is_new_build:
        new_build_counter.inc()
    known_builds.set(len(document.builds))

    result = finish(
        CheckStatus.OK,
        http_status=response.status,
        build_number=outcome.identifier,
        is_new_build=outcome.is_new_build,
    )
    logger.info("Done, build %s", outcome.identifier)
    return result


async def run(
    store: HistoryStore,
    fetcher: Fetcher,
    url: str,
    *,
    clock: Clock = utcnow_iso,
    timer: Timer = time.monotonic,
    max_checks: int = SETTINGS.MAX_CHECKS,
    marker_id: str = SETTINGS.MARKER_ID,
) -> RunResult:
    started = timer()
    try:
        return await run_once(
            store,
            fetcher,
            url,
            clock=clock,
            timer=timer,
            max_checks=max_checks,
            marker_id=marker_id,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Unexpected error",
            exc_info=True,
            extra=_alert_context(CheckStatus.UNKNOWN_ERROR, url),
        )
        check = Check(
            checked_at=clock(),
            status=CheckStatus.UNKNOWN_ERROR,
            duration_ms=_elapsed_ms(started, timer),
            error_message=str(exc) or type(exc).__name__,
        )

    # re-read from disk, the in-memory document may be half-updated
    try:
        document = store.load(check.checked_at)
        record_check(document, check, max_checks)
        store.save(document)
    except Exception:  # noqa: BLE001
        logger.error("Failed to record unknown_error check", exc_info=True)

    return _observe(RunResult(check))
