from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Tuple, Union

from buildwatch.model import Build, HistoryDocument

logger = logging.getLogger("buildwatch")

BUILD_NUMBER_KEY = "buildNumber"


@dataclass(frozen=True)
class BuildObserved:
    identifier: str
    is_new_build: bool


@dataclass(frozen=True)
class MissingBuildInfo:
    reason: str


ReconcileOutcome = Union[BuildObserved, MissingBuildInfo]


def _build_number(config: Any) -> str | None:
    if not isinstance(config, dict):
        return None
    environment = config.get("environment")
    if not isinstance(environment, dict):
        return None
    build_number = environment.get(BUILD_NUMBER_KEY)
    if not isinstance(build_number, str) or build_number == "":
        return None
    return build_number


def reconcile(
    document: HistoryDocument, config: Any, now: str
) -> Tuple[HistoryDocument, ReconcileOutcome]:
    """Record an observation of the build described by ``config``.

    A known identifier only has its ``lastSeenAt`` bumped; the stored
    environment and raw config are kept as first seen, even if the new payload
    differs. An unknown identifier is prepended as a new build.
    """
    build_number = _build_number(config)
    if build_number is None:
        return document, MissingBuildInfo("Config found but no buildNumber present")

    existing = document.find_build(build_number)
    if existing is not None:
        logger.info("Build %s already exists", build_number)
        # never move lastSeenAt backwards if the clock steps back
        existing.last_seen_at = max(existing.last_seen_at, now)
        return document, BuildObserved(build_number, is_new_build=False)

    logger.info("Found new build: %s", build_number)
    environment = {
        key: value
        for key, value in config["environment"].items()
        if key != BUILD_NUMBER_KEY
    }
    environment[BUILD_NUMBER_KEY] = build_number
    document.builds.insert(
        0,
        Build(
            identifier=build_number,
            first_seen_at=now,
            last_seen_at=now,
            environment=environment,
            raw_config=config,
        ),
    )
    return document, BuildObserved(build_number, is_new_build=True)
