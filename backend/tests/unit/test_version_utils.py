"""Unit tests for backend.src.utils.version."""

from importlib import metadata

from backend.src.utils import version as version_module
from backend.src.utils.version import DEV_VERSION, get_version


class TestGetVersion:
    """Tests for get_version()."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FAMHUB_VERSION", "v1.4.0")
        assert get_version() == "v1.4.0"

    def test_installed_metadata(self, monkeypatch, mocker):
        monkeypatch.delenv("FAMHUB_VERSION", raising=False)
        mocker.patch.object(version_module.metadata, "version", return_value="1.2.3")
        assert get_version() == "1.2.3"

    def test_uninstalled_checkout(self, monkeypatch, mocker):
        monkeypatch.delenv("FAMHUB_VERSION", raising=False)
        mocker.patch.object(
            version_module.metadata, "version",
            side_effect=metadata.PackageNotFoundError("familyhub"),
        )
        assert get_version() == DEV_VERSION
