import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

from buildwatch.config import SETTINGS, Settings

logger = logging.getLogger("buildwatch")

push_registry = CollectorRegistry()

check_counter = Counter(
    "buildwatch_num_checks",
    "Number of recorded checks",
    labelnames=["status"],
    registry=push_registry,
)

new_build_counter = Counter(
    "buildwatch_num_new_builds",
    "Number of previously unseen builds discovered",
    registry=push_registry,
)

run_duration = Gauge(
    "buildwatch_run_duration_seconds",
    "Wall-clock duration of the last run",
    registry=push_registry,
)

known_builds = Gauge(
    "buildwatch_known_builds",
    "Number of builds in the history document",
    registry=push_registry,
)


def push_metrics(settings: Settings = SETTINGS) -> bool:
    if settings.PUSH_GATEWAY is None:
        return False
    try:
        push_to_gateway(settings.PUSH_GATEWAY, job="buildwatch", registry=push_registry)
    except Exception:  # noqa: BLE001
        logger.warning(
            "Failed to push metrics to %s", settings.PUSH_GATEWAY, exc_info=True
        )
        return False
    return True
