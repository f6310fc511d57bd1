from pathlib import Path

from shelfmarks.config import Settings, load_settings


def test_defaults(monkeypatch):
    for k in ("SHELF_IMPORT_BATCH_SIZE", "SHELF_OWNER", "SHELF_NO_COLOR"):
        monkeypatch.delenv(k, raising=False)
    s = Settings.from_env()
    assert s.import_batch_size == 20
    assert s.import_batch_pause_ms == 100
    assert s.owner == ""
    assert s.no_color is False


def test_env_overrides_and_bad_ints_fall_back(monkeypatch):
    monkeypatch.setenv("SHELF_IMPORT_BATCH_SIZE", "5")
    monkeypatch.setenv("SHELF_IMPORT_FOLDER_JOBS", "lots")
    monkeypatch.setenv("SHELF_OWNER", "alice")
    monkeypatch.setenv("SHELF_NO_COLOR", "yes")
    s = Settings.from_env()
    assert s.import_batch_size == 5
    assert s.import_folder_jobs == 8
    assert s.owner == "alice"
    assert s.no_color is True


def test_yaml_file_overrides_env_and_ignores_unknown_keys(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("SHELF_DB_PATH", "/env/path.sqlite")
    cfg = tmp_path / "shelf.yaml"
    cfg.write_text("db_path: /yaml/path.sqlite\nimport_batch_size: 7\nnot_a_setting: 1\n", encoding="utf-8")
    s = load_settings(str(cfg))
    assert s.db_path == "/yaml/path.sqlite"
    assert s.import_batch_size == 7
    assert not hasattr(s, "not_a_setting")


def test_load_settings_without_file_reads_env(monkeypatch):
    monkeypatch.setenv("SHELF_LOG_LEVEL", "DEBUG")
    assert load_settings(None).log_level == "DEBUG"
