import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from capalerts import cli, sources
from capalerts.cli import main
from capalerts.settings import get_settings
from conftest import cap12, info12


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "alert.xml"
    path.write_text(text, encoding="utf-8")
    return path


def test_validate_clean_alert(tmp_path: Path, cap12_alert: str) -> None:
    result = CliRunner().invoke(main, ["validate", str(_write(tmp_path, cap12_alert))])
    assert result.exit_code == 0
    assert "43b080713727 is valid" in result.output


def test_validate_reports_findings_as_json(tmp_path: Path) -> None:
    path = _write(tmp_path, cap12(info12("<web>relative</web>")))
    result = CliRunner().invoke(main, ["validate", "--json", str(path)])
    assert result.exit_code == 1
    findings = json.loads(result.output)
    assert findings == [
        {
            "xpath": "/alert[1]/info[1]/web[1]",
            "level": "ERROR",
            "type": "INVALID_WEB",
            "source": "CAP",
            "message": 'Invalid <web>: "relative". Must be a full absolute URI.',
        }
    ]


def test_validate_fail_level(tmp_path: Path) -> None:
    path = _write(tmp_path, cap12(info12("<description>a &amp;amp; b</description>")))
    runner = CliRunner()
    assert runner.invoke(main, ["validate", str(path)]).exit_code == 0
    result = runner.invoke(main, ["validate", "--fail-level", "warning", str(path)])
    assert result.exit_code == 1
    assert "Findings" in result.output


def test_validate_rejects_non_cap_documents(tmp_path: Path) -> None:
    path = _write(tmp_path, "<feed/>")
    result = CliRunner().invoke(main, ["validate", str(path)])
    assert result.exit_code == 2


def test_validate_missing_file(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["validate", str(tmp_path / "nope.xml")])
    assert result.exit_code == 2
    assert "Alert file not found" in result.output


def _serve(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    def fetch(url: str, timeout_seconds: float = 15.0):
        return sources.fetch_document(url, timeout_seconds, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli, "fetch_document", fetch)


def test_validate_fetches_urls(monkeypatch: pytest.MonkeyPatch, cap12_alert: str) -> None:
    _serve(monkeypatch, lambda request: httpx.Response(200, content=cap12_alert.encode("utf-8")))
    result = CliRunner().invoke(main, ["validate", "https://alerts.test/cap.xml"])
    assert result.exit_code == 0
    assert "43b080713727 is valid" in result.output


def test_unreachable_url_is_unreadable(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, lambda request: httpx.Response(404))
    runner = CliRunner()
    for command in ("validate", "convert"):
        result = runner.invoke(main, [command, "https://alerts.test/missing.xml"])
        assert result.exit_code == 2
        assert "Could not fetch https://alerts.test/missing.xml" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


def test_validate_reads_stdin(cap11_alert: str) -> None:
    result = CliRunner().invoke(main, ["validate", "--json", "-"], input=cap11_alert)
    assert result.exit_code == 0
    assert json.loads(result.output) == []


def test_convert_to_json(tmp_path: Path, cap12_alert: str) -> None:
    path = _write(tmp_path, cap12_alert)
    result = CliRunner().invoke(main, ["convert", "--indent", "0", str(path)])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["identifier"] == "43b080713727"
    assert payload["info"][0]["area"][0]["areaDesc"] == "U.S. nationwide and interests worldwide"


def test_convert_to_xml_file(tmp_path: Path, cap10_alert: str) -> None:
    path = _write(tmp_path, cap10_alert)
    output = tmp_path / "out.xml"
    result = CliRunner().invoke(main, ["convert", "--format", "xml", "--output", str(output), str(path)])
    assert result.exit_code == 0
    text = output.read_text(encoding="utf-8")
    assert 'xmlns="http://www.incident.com/cap/1.0"' in text
    assert "<eventCode>SAME=EQW</eventCode>" in text


def test_convert_honours_validate_setting(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAP_VALIDATE", "true")
    path = _write(tmp_path, cap12("", identifier=""))
    result = CliRunner().invoke(main, ["convert", str(path)])
    assert result.exit_code == 1
