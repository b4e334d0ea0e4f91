from __future__ import annotations

import json
from pathlib import Path

import pytest

from coda_framer import cli
from coda_framer.cli import main as cli_main


def _write(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def test_cli_map_writes_result(tmp_path: Path) -> None:
    columns = _write(tmp_path / "columns.json", [{"id": "c1", "name": "Title"}, {"id": "c2", "name": "Tags", "format": {"type": "lookup"}}])
    rows = _write(tmp_path / "rows.json", [{"id": "r1", "values": {"c1": "Hello", "c2": "News"}}, {"values": {"c1": "x"}}])
    existing = _write(tmp_path / "existing.json", [{"id": "c1", "name": "Headline", "type": "string"}])
    output = tmp_path / "out" / "result.json"

    exit_code = cli_main(
        [
            "map",
            "--columns",
            str(columns),
            "--rows",
            str(rows),
            "--slug-field",
            "c1",
            "--existing-fields",
            str(existing),
            "--output",
            str(output),
        ]
    )

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["skippedCount"] == 1
    assert payload["fields"][0]["name"] == "Headline"
    assert payload["fields"][1]["cases"] == [{"id": "News", "name": "News"}]
    assert payload["items"][0]["fieldData"]["c2"] == {"type": "enum", "value": "News"}


def test_cli_map_reports_bad_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    columns = tmp_path / "columns.json"
    columns.write_text("{broken", encoding="utf-8")
    rows = _write(tmp_path / "rows.json", [])

    with pytest.raises(SystemExit) as exc:
        cli_main(["map", "--columns", str(columns), "--rows", str(rows), "--slug-field", "c1"])

    assert exc.value.code == 1
    assert "Error: Invalid columns JSON" in capsys.readouterr().err


def test_cli_remote_command_requires_credentials(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("FRAMER_PROJECT_URL", raising=False)
    monkeypatch.delenv("FRAMER_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exc:
        cli_main(["collections"])

    assert exc.value.code == 1
    err = capsys.readouterr().err
    assert "Missing required config: --project-url or FRAMER_PROJECT_URL, --api-key or FRAMER_API_KEY" in err


def test_cli_collections_uses_client(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    class _Client:
        def __init__(self, cfg):
            self.cfg = cfg

        def list_managed_collections(self):
            return [{"id": "col-1", "name": "Posts", "extra": True}]

    monkeypatch.setattr(cli, "FramerClient", _Client)

    exit_code = cli_main(["--project-url", "https://framer.com/projects/x", "--api-key", "k", "collections"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == [{"id": "col-1", "name": "Posts"}]
