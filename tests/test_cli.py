import pytest

from conftest import write_json
from i18n_openai_sync import __version__
from i18n_openai_sync.cli import build_parser, main


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("OPENAI_API_KEY", "I18N_SYNC_LOCALES_GLOB", "I18N_SYNC_ENABLED", "I18N_SYNC_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_parser_defaults():
    args = build_parser().parse_args(["."])
    assert args.locales_globs is None
    assert args.indentation is None
    assert not args.once


def test_parser_repeated_globs():
    args = build_parser().parse_args([".", "-g", "a/*/*.json", "-g", "b/*/*.json", "-i", "4"])
    assert args.locales_globs == ["a/*/*.json", "b/*/*.json"]
    assert args.indentation == 4


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_missing_workspace(tmp_path, capsys, clean_env):
    assert main([str(tmp_path / "missing")]) == 1
    assert "Directory does not exist" in capsys.readouterr().err


def test_invalid_environment(tmp_path, monkeypatch, clean_env, capsys):
    monkeypatch.setenv("I18N_SYNC_ENABLED", "sometimes")
    assert main([str(tmp_path)]) == 1
    assert "I18N_SYNC_ENABLED" in capsys.readouterr().err


def test_once_loads_workspace_and_exits(tmp_path, clean_env):
    project = tmp_path / "project"
    write_json(project / "locales" / "en" / "common.json", {"common": {"save": "Save"}})
    write_json(project / "locales" / "fr" / "common.json", {"common": {"save": "Enregistrer"}})

    assert main([str(project), "--once", "--cache-file", str(tmp_path / "cache.sqlite3")]) == 0
    assert (tmp_path / "cache.sqlite3").exists()
