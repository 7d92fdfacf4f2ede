import pydantic
import pytest

from buildwatch.model import Build, Check, CheckStatus, HistoryDocument

NOW = "2026-02-16T10:00:00.000Z"


def test_check_dump_omits_unset_optional_fields():
    check = Check(
        checked_at=NOW,
        status=CheckStatus.NETWORK_ERROR,
        duration_ms=3,
        error_message="connection refused",
    )

    assert check.model_dump(by_alias=True, mode="json") == {
        "checkedAt": NOW,
        "status": "network_error",
        "durationMs": 3,
        "errorMessage": "connection refused",
    }


def test_check_rejects_negative_duration():
    with pytest.raises(pydantic.ValidationError):
        Check(checked_at=NOW, status=CheckStatus.OK, duration_ms=-1)


def test_check_rejects_unknown_status():
    with pytest.raises(pydantic.ValidationError):
        Check.model_validate({"checkedAt": NOW, "status": "timeout", "durationMs": 1})


def test_check_keeps_unknown_keys():
    check = Check.model_validate(
        {"checkedAt": NOW, "status": "ok", "durationMs": 5, "region": "eastus2"}
    )

    assert check.model_dump(by_alias=True, mode="json") == {
        "checkedAt": NOW,
        "status": "ok",
        "durationMs": 5,
        "region": "eastus2",
    }


def test_build_accepts_last_seen_before_first_seen():
    build = Build(
        identifier="B-1",
        first_seen_at="2026-02-16T11:00:00.000Z",
        last_seen_at=NOW,
    )

    assert build.last_seen_at == NOW


def test_build_without_identifier_or_build_number_is_invalid():
    with pytest.raises(pydantic.ValidationError):
        Build.model_validate(
            {"firstSeenAt": NOW, "lastSeenAt": NOW, "foundryEnv": {"region": "eastus2"}}
        )


def test_history_document_current_build_and_lookup():
    document = HistoryDocument.empty(NOW)
    assert document.current_build is None

    for identifier in ("B-1", "B-2"):
        document.builds.insert(
            0, Build(identifier=identifier, first_seen_at=NOW, last_seen_at=NOW)
        )

    assert document.current_build.identifier == "B-2"
    assert document.find_build("B-1").identifier == "B-1"
    assert document.find_build("b-1") is None
