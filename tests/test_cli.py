"""Tests for image_exporter CLI helpers."""
import json
import logging
import os

import pytest

from image_exporter import cli
from image_exporter.cli import (
    CLIError,
    _load_env_file,
    _parse_entity_ids,
    _setup_logging,
    run_cli,
)
from image_exporter.models import BatchExportResult


def test_parse_entity_ids():
    assert _parse_entity_ids(["1", "2,3", " 4 ,"]) == [1, 2, 3, 4]
    with pytest.raises(CLIError):
        _parse_entity_ids(["7", "-2"])


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# assets",
                "EXTERNAL_API_ASSETS_URL=http://localhost:5573/api",
                "API_KEY='secret'",
                "export EXPORTER_STORAGE_ROOT=/srv/uploads",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.delenv("EXTERNAL_API_ASSETS_URL", raising=False)
    monkeypatch.delenv("EXPORTER_STORAGE_ROOT", raising=False)
    monkeypatch.setenv("API_KEY", "already-set")

    _load_env_file(env_path)

    assert os.environ["EXTERNAL_API_ASSETS_URL"] == "http://localhost:5573/api"
    assert os.environ["EXPORTER_STORAGE_ROOT"] == "/srv/uploads"
    assert os.environ["API_KEY"] == "already-set"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError):
        _load_env_file(tmp_path / "nope.env")


def test_setup_logging_defaults_to_silent():
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    logging.disable(logging.NOTSET)


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True
    logging.disable(logging.NOTSET)


def test_no_ids_prints_help(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli([]) == 0
    assert "image-export" in capsys.readouterr().out
    logging.disable(logging.NOTSET)


def test_invalid_id_exits_with_error(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli(["abc", "--silent"]) == 1
    assert "invalid entity id" in capsys.readouterr().err
    logging.disable(logging.NOTSET)


def test_run_writes_report(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    seen = {}

    async def fake_run_export(config, entity_ids, pending, limit, show_progress):
        seen["ids"] = entity_ids
        seen["group_size"] = config.group_size
        result = BatchExportResult(total_entities=len(entity_ids), processed_entities=len(entity_ids))
        result.success = True
        return result

    monkeypatch.setattr(cli, "_run_export", fake_run_export)
    report = tmp_path / "out" / "report.json"

    code = run_cli(["501", "502", "--group-size", "2", "--report", str(report), "--silent"])

    assert code == 0
    assert seen == {"ids": [501, 502], "group_size": 2}
    assert json.loads(report.read_text(encoding="utf-8"))["processed_entities"] == 2
    logging.disable(logging.NOTSET)
