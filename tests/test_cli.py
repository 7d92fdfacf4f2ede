import json
from urllib.parse import quote

from typer.testing import CliRunner

from buildwatch import cli
from buildwatch.fetch import PageResponse
from buildwatch.model import Build, Check, CheckStatus, HistoryDocument
from buildwatch.store import HistoryStore

runner = CliRunner()


def fake_fetch(status: int = 200, body: str = "", reason: str = "OK"):
    async def fetch_page(session, url):
        return PageResponse(status=status, reason=reason, body=body)

    return fetch_page


def test_check_command_records_build(tmp_path, monkeypatch):
    path = tmp_path / "data.json"
    block = quote(json.dumps({"environment": {"buildNumber": "B-1", "region": "eastus2"}}))
    monkeypatch.setattr(
        cli,
        "fetch_page",
        fake_fetch(body=f'<script id="ai-foundry-host-context">{block}</script>'),
    )

    result = runner.invoke(
        cli.app, ["check", "--url", "https://example.com", "--data-file", str(path)]
    )

    assert result.exit_code == 0, result.output
    data = json.loads(path.read_text())
    assert data["builds"][0]["identifier"] == "B-1"
    assert data["checks"][0]["status"] == "ok"


def test_check_command_exits_non_zero_on_failure(tmp_path, monkeypatch):
    path = tmp_path / "data.json"
    monkeypatch.setattr(
        cli, "fetch_page", fake_fetch(status=500, reason="Internal Server Error")
    )

    result = runner.invoke(
        cli.app, ["check", "--url", "https://example.com", "--data-file", str(path)]
    )

    assert result.exit_code == 1
    data = json.loads(path.read_text())
    assert data["checks"][0]["status"] == "http_error"
    assert data["checks"][0]["errorMessage"] == "500 Internal Server Error"


def test_show_command_summarizes_history(tmp_path):
    path = tmp_path / "data.json"
    document = HistoryDocument.empty("2026-02-16T12:00:00.000Z")
    document.builds = [
        Build(
            identifier="B-2",
            first_seen_at="2026-02-16T10:00:00.000Z",
            last_seen_at="2026-02-16T12:00:00.000Z",
            environment={"region": "eastus2", "name": "prod", "buildNumber": "B-2"},
        ),
        Build(
            identifier="B-1",
            first_seen_at="2026-02-15T10:00:00.000Z",
            last_seen_at="2026-02-16T09:00:00.000Z",
        ),
    ]
    document.checks = [
        Check(
            checked_at="2026-02-16T12:00:00.000Z",
            status=CheckStatus.HTTP_ERROR,
            duration_ms=120,
            http_status=502,
            error_message="502 Bad Gateway",
        ),
        Check(
            checked_at="2026-02-16T10:00:00.000Z",
            status=CheckStatus.OK,
            duration_ms=80,
            build_number="B-2",
            is_new_build=True,
        ),
    ]
    HistoryStore(path).save(document)

    result = runner.invoke(cli.app, ["show", "--data-file", str(path)])

    assert result.exit_code == 0, result.output
    assert "Current build: B-2" in result.output
    assert "region: eastus2" in result.output
    assert "live for 2 hours" in result.output
    assert "Known builds: 2" in result.output
    assert "502 Bad Gateway" in result.output
    assert "B-2 (new)" in result.output


def test_show_command_handles_missing_file(tmp_path):
    result = runner.invoke(cli.app, ["show", "--data-file", str(tmp_path / "data.json")])

    assert result.exit_code == 0, result.output
    assert "No builds recorded yet" in result.output
    assert "No checks recorded yet" in result.output
    assert not (tmp_path / "data.json").exists()


def test_show_command_handles_document_without_checks(tmp_path):
    path = tmp_path / "data.json"
    path.write_text(json.dumps({"lastUpdatedAt": "2026-02-16T10:00:00.000Z", "builds": []}))

    result = runner.invoke(cli.app, ["show", "--data-file", str(path), "--limit", "5"])

    assert result.exit_code == 0, result.output
    assert "No checks recorded yet" in result.output
