"""Tests for configuration loading."""

import pytest

from pkgtrend.config import TrackerConfig, load_config


@pytest.fixture(autouse=True)
def no_env_token(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path):
        config = load_config(str(tmp_path / "missing.yml"))
        assert config == TrackerConfig()

    def test_no_path(self):
        assert load_config().cache_minutes == 15.0

    def test_file_values(self, tmp_path):
        path = tmp_path / "pkgtrend.yml"
        path.write_text(
            "package_id: Sample.Package\n"
            "repository: octo/sample\n"
            "cache_minutes: 0\n"
            "max_workers: 8\n"
        )

        config = load_config(str(path))

        assert config.package_id == "Sample.Package"
        assert config.repository == "octo/sample"
        assert config.cache_minutes == 0
        assert config.max_workers == 8

    def test_overrides_win_over_file(self, tmp_path):
        path = tmp_path / "pkgtrend.yml"
        path.write_text("package_id: Sample.Package\ndatabase: from-file.db\n")

        config = load_config(str(path), database="override.db", package_id=None)

        assert config.database == "override.db"
        assert config.package_id == "Sample.Package"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "pkgtrend.yml"
        path.write_text("")
        assert load_config(str(path)) == TrackerConfig()

    def test_unknown_keys_rejected(self, tmp_path):
        path = tmp_path / "pkgtrend.yml"
        path.write_text("packages: [a, b]\n")

        with pytest.raises(ValueError, match="packages"):
            load_config(str(path))

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "pkgtrend.yml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert load_config().github_token == "env-token"

    def test_explicit_token_wins(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert load_config(github_token="explicit").github_token == "explicit"


class TestValidate:
    """Tests for TrackerConfig.validate."""

    def test_invalid_package_id(self):
        with pytest.raises(ValueError, match="Package id"):
            load_config(package_id="-bad-")

    def test_invalid_repository(self):
        with pytest.raises(ValueError, match="owner/name"):
            load_config(repository="not a repo")

    def test_non_positive_workers(self):
        with pytest.raises(ValueError):
            TrackerConfig(max_workers=0).validate()
