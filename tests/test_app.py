"""Tests for the command line entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from proofline import app
from proofline.services.client import CorrectionClient
from proofline.services.dictionary import CustomDictionary
from proofline.services.settings import Settings, SettingsStore
from proofline.utils import logging as logging_utils


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "settings.json"


def test_check_prints_local_issues(tmp_path: Path, settings_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    document = tmp_path / "note.md"
    document.write_text("첫 줄\n둘째  줄", encoding="utf-8")

    exit_code = app.main(["--settings-path", str(settings_path), "check", "--local", str(document)])

    output = capsys.readouterr().out.splitlines()
    assert exit_code == app.EXIT_ISSUES
    assert output == [
        f"{document}:2:3 [띄어쓰기] 여분의 공백이 있습니다. ->  ",
        f"{document}: API key required (local)",
    ]


def test_check_json_output(tmp_path: Path, settings_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    document = tmp_path / "note.md"
    document.write_text("끝에 공백 ", encoding="utf-8")

    exit_code = app.main(["--settings-path", str(settings_path), "check", "--local", "--json", str(document)])

    reports = json.loads(capsys.readouterr().out)
    assert exit_code == app.EXIT_ISSUES
    assert reports[0]["path"] == str(document)
    assert reports[0]["status"] == "local_no_credentials"
    issue = reports[0]["issues"][0]
    assert (issue["line"], issue["column"]) == (1, 6)
    assert issue["category"] == "SPACING"
    assert issue["label"] == "띄어쓰기"
    assert issue["suggestion"] == ""


def test_clean_and_excluded_files_exit_zero(
    tmp_path: Path, settings_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    clean = tmp_path / "clean.md"
    clean.write_text("깔끔한 문장", encoding="utf-8")
    other = tmp_path / "data.txt"
    other.write_text("a  b", encoding="utf-8")
    missing = tmp_path / "gone.md"

    exit_code = app.main(
        ["--settings-path", str(settings_path), "check", "--local", str(clean), str(other), str(missing)]
    )

    output = capsys.readouterr().out.splitlines()
    assert exit_code == app.EXIT_CLEAN
    assert output == [
        f"{clean}: API key required (local)",
        f"{other}: Excluded",
        f"{missing}: Not found",
    ]


def test_disabled_setting_reports_disabled(
    tmp_path: Path, settings_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    document = tmp_path / "note.md"
    document.write_text("a  b", encoding="utf-8")

    exit_code = app.main(
        ["--settings-path", str(settings_path), "--set", "enabled=false", "check", "--local", str(document)]
    )

    assert exit_code == app.EXIT_CLEAN
    assert capsys.readouterr().out.strip() == f"{document}: Disabled"


def test_invalid_override_is_a_usage_error(settings_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = app.main(["--settings-path", str(settings_path), "--set", "nonsense", "settings"])

    assert exit_code == app.EXIT_USAGE
    assert "Invalid --set override" in capsys.readouterr().err


def test_settings_command_redacts_api_key(settings_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    SettingsStore(settings_path).save(Settings(api_key="abcdefgh", debounce_ms=900))

    exit_code = app.main(["--settings-path", str(settings_path), "--set", "include_globs=[\"*.txt\"]", "settings"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == app.EXIT_CLEAN
    assert payload["settings"]["api_key"] == "ab****gh"
    assert payload["settings"]["debounce_ms"] == 900
    assert payload["settings"]["include_globs"] == ["*.txt"]
    assert payload["meta"]["cli_overrides"] == ["include_globs"]
    assert payload["meta"]["path"] == str(settings_path)


def test_coerce_cli_overrides() -> None:
    overrides = app._coerce_cli_overrides(
        ["debounce_ms=300", "ignore_english=no", "request_timeout=1.5", "language= ko-KR ", "endpoint="]
    )

    assert overrides == {
        "debounce_ms": 300,
        "ignore_english": False,
        "request_timeout": 1.5,
        "language": "ko-KR",
        "endpoint": "",
    }
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["unknown=1"])
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["enabled=maybe"])
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["include_globs={\"a\": 1}"])


def test_setup_logging_writes_rotating_file(tmp_path: Path) -> None:
    log_path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path / "logs", force=True)

    assert log_path == tmp_path / "logs" / logging_utils.LOG_FILE_NAME
    assert logging_utils.get_log_path() == log_path
    assert logging_utils.setup_logging(logging.INFO, log_dir=tmp_path / "other") == log_path
    assert logging.getLogger("httpx").level == logging.WARNING
    logging.getLogger("proofline.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in log_path.read_text(encoding="utf-8")


def test_resolve_level() -> None:
    assert logging_utils.resolve_level("warning") == logging.WARNING
    assert logging_utils.resolve_level(" ERROR ") == logging.ERROR
    assert logging_utils.resolve_level("15") == 15
    assert logging_utils.resolve_level("chatty") == logging.INFO
    assert logging_utils.resolve_level(None) == logging.INFO
    assert logging_utils.resolve_level("ERROR", debug=True) == logging.DEBUG


def test_configure_logging_uses_settings(tmp_path: Path) -> None:
    settings = Settings(log_level="WARNING", log_dir=str(tmp_path / "custom"))

    log_path = app.configure_logging(settings, force=True)

    assert log_path == tmp_path / "custom" / "proofline.log"
    assert logging.getLogger().level == logging.WARNING
    assert app.configure_logging(settings, debug=True, force=True) == log_path
    assert logging.getLogger().level == logging.DEBUG


def test_settings_command_reports_log_path(
    tmp_path: Path, settings_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    expected = app.configure_logging(Settings(log_dir=str(tmp_path / "logs")), force=True)

    app.main(["--settings-path", str(settings_path), "--set", "log_level=debug", "settings"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["settings"]["log_level"] == "debug"
    assert payload["meta"]["log_path"] == str(expected)


def _mock_client_factory(handler: Callable[[httpx.Request], httpx.Response]) -> Callable[[Any], CorrectionClient]:
    def factory(client_settings: Any) -> CorrectionClient:
        return CorrectionClient(client_settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return factory


def test_dict_add_persists_and_lists(settings_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ["--settings-path", str(settings_path), "dict"]

    assert app.main([*base, "add", "np_set", " 바른 "]) == app.EXIT_CLEAN
    assert SettingsStore(settings_path).load().custom_dictionary == {"np_set": ["바른"]}
    assert app.main([*base, "add", "np_set", "바른"]) == app.EXIT_ISSUES
    capsys.readouterr()

    assert app.main([*base, "list"]) == app.EXIT_CLEAN
    output = capsys.readouterr().out.splitlines()
    assert "np_set (고유명사): 바른" in output
    assert "vv_set (동사): -" in output

    assert app.main([*base, "remove", "np_set", "바른"]) == app.EXIT_CLEAN
    assert SettingsStore(settings_path).load().custom_dictionary == {}
    assert app.main([*base, "remove", "np_set", "바른"]) == app.EXIT_ISSUES


def test_dict_add_syncs_when_configured(
    settings_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    payloads: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        payloads.append(json.loads(request.content))
        assert request.headers["api-key"] == "secret"
        return httpx.Response(200)

    monkeypatch.setattr(app, "CorrectionClient", _mock_client_factory(handler))
    exit_code = app.main(
        [
            "--settings-path",
            str(settings_path),
            "--set",
            "api_key=secret",
            "--set",
            "custom_dict_enabled=true",
            "--set",
            "custom_dict_domain=notes",
            "dict",
            "add",
            "vv_set",
            "바르다",
        ]
    )

    assert exit_code == app.EXIT_CLEAN
    assert capsys.readouterr().out.splitlines()[-1] == "Custom dictionary synced"
    assert payloads[0]["domain_name"] == "notes"
    assert payloads[0]["dict"]["vv_set"]["items"] == {"바르다": 1}
    stored = settings_path.read_text(encoding="utf-8")
    assert "secret" not in stored
    assert "api_key" not in json.loads(stored)


def test_dict_sync_reports_problems(
    settings_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(app, "CorrectionClient", _mock_client_factory(lambda request: httpx.Response(500)))

    assert app.main(["--settings-path", str(settings_path), "dict", "sync"]) == app.EXIT_ISSUES
    assert "Custom dictionary is disabled" in capsys.readouterr().err

    configured = [
        "--settings-path",
        str(settings_path),
        "--set",
        "api_key=k",
        "--set",
        "custom_dict_enabled=true",
    ]
    assert app.main([*configured, "dict", "sync"]) == app.EXIT_ISSUES
    assert "domain is not set" in capsys.readouterr().err
    assert app.main([*configured, "--set", "custom_dict_domain=notes", "dict", "sync"]) == app.EXIT_ISSUES
    assert "sync failed" in capsys.readouterr().err


def test_sync_dictionary_marks_success() -> None:
    dictionary = CustomDictionary({"np_set": ["바른"]})
    settings = Settings(api_key="k", custom_dict_enabled=True, custom_dict_domain="notes")
    client = _mock_client_factory(lambda request: httpx.Response(200))(settings.client_settings())

    assert asyncio.run(app.sync_dictionary(dictionary, settings, client=client)) is True
    assert dictionary.last_sync is not None
    assert app.dictionary_sync_problem(Settings(custom_dict_enabled=True)) == "API key required"
    assert asyncio.run(app.sync_dictionary(dictionary, Settings(), client=client)) is False
