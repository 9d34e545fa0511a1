import os
from pathlib import Path

import run
from eatery_finder.config import DEFAULT_GEMINI_MODEL, Settings


def _parse_env_file(env_path: Path, *, override: bool = False) -> None:
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        if override or key not in os.environ:
            os.environ[key] = val


def test_load_env_is_optional_and_does_not_override_env(tmp_path: Path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("GEMINI_API_KEY=from-dotenv\nGEMINI_MODEL=gemini-from-dotenv\n", encoding="utf-8")

    called: dict[str, Path] = {}

    def fake_load_dotenv(*, dotenv_path, override=False):
        called["dotenv_path"] = Path(dotenv_path).resolve()
        _parse_env_file(Path(dotenv_path), override=bool(override))
        return True

    monkeypatch.setattr(run, "_load_dotenv", fake_load_dotenv)
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    monkeypatch.delenv("GEMINI_MODEL", raising=False)

    run.load_env(root_dir=tmp_path)

    assert called["dotenv_path"] == env_path.resolve()
    assert os.environ.get("GEMINI_API_KEY") == "from-env"
    assert os.environ.get("GEMINI_MODEL") == "gemini-from-dotenv"


def test_load_env_missing_file_is_noop(tmp_path: Path, monkeypatch):
    def fail(**kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(run, "_load_dotenv", fail)
    run.load_env(root_dir=tmp_path)


def test_settings_from_env(monkeypatch):
    monkeypatch.delenv("GOOGLE_PLACES_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", " maps-key ")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "gem-key")
    monkeypatch.setenv("GEMINI_MODEL", "")

    settings = Settings.from_env()

    assert settings.google_places_api_key == "maps-key"
    assert settings.gemini_api_key == "gem-key"
    assert settings.gemini_model == DEFAULT_GEMINI_MODEL


def test_settings_from_env_without_keys(monkeypatch):
    for name in ("GOOGLE_PLACES_API_KEY", "GOOGLE_MAPS_API_KEY", "GEMINI_API_KEY", "API_KEY", "GEMINI_MODEL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.google_places_api_key is None
    assert settings.gemini_api_key is None
