import json
import zipfile

from typer.testing import CliRunner

from assetflow.cli import app

runner = CliRunner()


def _isolate(tmp_path, monkeypatch):
    monkeypatch.setenv("ASSETFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.delenv("ASSETFLOW_PROJECT_ROOT", raising=False)
    monkeypatch.delenv("ASSETFLOW_LOG_LEVEL", raising=False)


def _write_export(root):
    database = {
        key: []
        for key in (
            "elements",
            "buildMenuCategories",
            "buildMenuItems",
            "uiSprites",
            "spriteModifiers",
            "buildings",
        )
    }
    with zipfile.ZipFile(root / "export.zip", "w") as archive:
        archive.writestr("export/database/database.json", json.dumps(database))
        archive.writestr("export/images/a.png", b"\x89PNG\r\n\x1a\n")


def test_steps_lists_graph_in_order(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = runner.invoke(app, ["steps"])
    assert result.exit_code == 0, result.stdout
    names = [line.split("\t")[0] for line in result.stdout.strip().splitlines()]
    assert names == [
        "extract-export",
        "replace-images",
        "generate-database",
        "replace-database",
    ]
    assert "deps: extract-export" in result.stdout


def test_steps_with_generator_option(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = runner.invoke(app, ["steps", "-g", "generate-icons=os.path:exists"])
    assert result.exit_code == 0, result.stdout
    assert "generate-icons\tdeps: generate-database, replace-images" in result.stdout

    bad = runner.invoke(app, ["steps", "-g", "generate-icons"])
    assert bad.exit_code != 0


def test_check_fails_without_export(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = runner.invoke(app, ["check", "--project-root", str(tmp_path)])
    assert result.exit_code == 1
    assert "Pre-flight checks failed" in result.stdout


def test_run_succeeds_and_fails_with_exit_codes(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)

    missing = runner.invoke(app, ["run", "--project-root", str(tmp_path)])
    assert missing.exit_code == 1
    assert "failed" in missing.stdout

    _write_export(tmp_path)
    result = runner.invoke(app, ["run", "--project-root", str(tmp_path)])
    assert result.exit_code == 0, result.stdout
    assert "completed successfully" in result.stdout
    assert (tmp_path / "frontend/src/assets/database/database.zip").is_file()
