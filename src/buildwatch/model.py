from __future__ import annotations

from enum import Enum
import json
from typing import Any, Dict, List, Optional

import pydantic


class CheckStatus(str, Enum):
    OK = "ok"
    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    MISSING_BUILD_INFO = "missing_build_info"
    UNKNOWN_ERROR = "unknown_error"


class DocumentModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        extra="allow",
        populate_by_name=True,
        validate_assignment=True,
    )


class Check(DocumentModel):
    checked_at: str = pydantic.Field(alias="checkedAt")
    status: CheckStatus
    duration_ms: int = pydantic.Field(alias="durationMs", ge=0)
    http_status: Optional[int] = pydantic.Field(None, alias="httpStatus")
    error_message: Optional[str] = pydantic.Field(None, alias="errorMessage")
    build_number: Optional[str] = pydantic.Field(None, alias="buildNumber")
    is_new_build: Optional[bool] = pydantic.Field(None, alias="isNewBuild")

    @pydantic.model_serializer(mode="wrap")
    def omit_unset(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


class Build(DocumentModel):
    identifier: str
    first_seen_at: str = pydantic.Field(alias="firstSeenAt")
    last_seen_at: str = pydantic.Field(alias="lastSeenAt")
    environment: Dict[str, Any] = pydantic.Field(default_factory=dict)
    raw_config: Dict[str, Any] = pydantic.Field(default_factory=dict, alias="rawConfig")

    @pydantic.model_validator(mode="before")
    @classmethod
    def upgrade_legacy_record(cls, data: Any) -> Any:
        # older documents keep the environment under "foundryEnv" and have no
        # top-level identifier
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "environment" not in data and "foundryEnv" in data:
            data["environment"] = data.pop("foundryEnv")
        if "identifier" not in data:
            environment = data.get("environment")
            if isinstance(environment, dict) and environment.get("buildNumber"):
                data["identifier"] = environment["buildNumber"]
        return data


class HistoryDocument(DocumentModel):
    last_updated_at: Optional[str] = pydantic.Field(None, alias="lastUpdatedAt")
    builds: List[Build]
    checks: List[Check] = pydantic.Field(default_factory=list)

    # build records that could not be read, written back unchanged after the
    # recognized ones
    _unrecognized_builds: List[Any] = pydantic.PrivateAttr(default_factory=list)

    @pydantic.field_validator("checks", mode="before")
    @classmethod
    def default_checks(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return value

    @pydantic.model_validator(mode="after")
    def check_unique_identifiers(self) -> HistoryDocument:
        seen = set()
        for build in self.builds:
            if build.identifier in seen:
                raise ValueError(f"Duplicate build identifier {build.identifier}")
            seen.add(build.identifier)
        return self

    @classmethod
    def empty(cls, now: str) -> HistoryDocument:
        return cls(last_updated_at=now, builds=[], checks=[])

    def find_build(self, identifier: str) -> Optional[Build]:
        for build in self.builds:
            if build.identifier == identifier:
                return build
        return None

    @property
    def current_build(self) -> Optional[Build]:
        return self.builds[0] if self.builds else None

    @property
    def unrecognized_builds(self) -> List[Any]:
        return self._unrecognized_builds

    def keep_unrecognized_build(self, record: Any) -> None:
        self._unrecognized_builds.append(record)

    def to_json(self) -> str:
        data = self.model_dump(mode="json", by_alias=True)
        data["builds"].extend(self._unrecognized_builds)
        return json.dumps(data, indent=2, ensure_ascii=False)
