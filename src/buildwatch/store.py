from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, List, Optional

import pydantic

from buildwatch.clock import utcnow_iso
from buildwatch.errors import CorruptStore
from buildwatch.model import Build, Check, HistoryDocument

logger = logging.getLogger("buildwatch")


class HistoryStore:
    """Flat-file persistence for the history document.

    Callers must not run two store round-trips against the same path at once:
    there is no locking and the last writer wins.
    """

    path: Path

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self, now: Optional[str] = None) -> HistoryDocument:
        now = now or utcnow_iso()
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("%s not found, creating a new one", self.path)
            return HistoryDocument.empty(now)

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CorruptStore(f"{self.path} is not valid JSON: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("builds"), list):
            raise CorruptStore(f"Invalid data structure in {self.path}")

        builds: List[Build] = []
        unrecognized: List[Any] = []
        for index, record in enumerate(data["builds"]):
            try:
                build = Build.model_validate(record)
            except pydantic.ValidationError as exc:
                logger.warning(
                    "Keeping unreadable build record #%d in %s as is: %s",
                    index,
                    self.path,
                    exc,
                )
                unrecognized.append(record)
                continue
            if any(known.identifier == build.identifier for known in builds):
                logger.warning(
                    "Keeping duplicate build %s in %s as is", build.identifier, self.path
                )
                unrecognized.append(record)
                continue
            builds.append(build)

        checks: List[Check] = []
        raw_checks = data.get("checks")
        if not isinstance(raw_checks, list):
            raw_checks = []
        for index, record in enumerate(raw_checks):
            try:
                checks.append(Check.model_validate(record))
            except pydantic.ValidationError as exc:
                logger.warning(
                    "Dropping unreadable check record #%d in %s: %s",
                    index,
                    self.path,
                    exc,
                )

        last_updated_at = data.get("lastUpdatedAt")
        if not isinstance(last_updated_at, str):
            last_updated_at = now

        document = HistoryDocument.model_validate(
            {
                **data,
                "lastUpdatedAt": last_updated_at,
                "builds": builds,
                "checks": checks,
            }
        )
        for record in unrecognized:
            document.keep_unrecognized_build(record)

        logger.debug(
            "Loaded %d builds and %d checks from %s",
            len(document.builds),
            len(document.checks),
            self.path,
        )
        return document

    def save(self, document: HistoryDocument) -> None:
        content = document.to_json()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Wrote %s", self.path)
