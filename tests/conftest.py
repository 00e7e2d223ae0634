import pytest

from shellwrap.config import reset_settings

_ENV_VARS = (
    "SHELLWRAP_UMASK",
    "SHELLWRAP_OUTPUT_VERBOSITY",
    "SHELLWRAP_RAISE_ON_NON_ZERO_EXIT",
    "SHELLWRAP_THEME",
    "SHELLWRAP_DEFAULT_ENV",
    "SHELLWRAP_COMMAND_MAP",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Every test starts from default settings: no user/project files, no env overrides."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("shellwrap.config.SETTINGS_FILE", tmp_path / "nonexistent.json")
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()
