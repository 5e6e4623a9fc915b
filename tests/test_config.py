"""
Tests for settings and naming helpers.
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from dav_backup.config import ConfigError, Settings
from dav_backup.utils import (
    backup_filename,
    directory_name,
    join_url,
    mask_sensitive,
    retention_directory_name,
)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Intervals and retention default to 4h / 24h / 3 days."""
        settings = Settings.from_options("https://cloud/dav/files/", "alice", "pw")

        assert settings.backup_interval == timedelta(hours=4)
        assert settings.retention_interval == timedelta(hours=24)
        assert settings.retention_days == 3
        assert settings.dump_program == "pg_dumpall"
        assert settings.work_dir == Path(".")

    def test_upload_root(self):
        """The upload root appends the user name to the base URL."""
        settings = Settings.from_options("https://cloud/remote.php/dav/files/", "alice", "pw")

        assert settings.upload_root == "https://cloud/remote.php/dav/files/alice"

    @pytest.mark.parametrize(
        "base_url, username, password, missing",
        [
            ("", "alice", "pw", "baseURL"),
            ("https://cloud", "", "pw", "username"),
            ("https://cloud", "alice", None, "password"),
        ],
    )
    def test_missing_required(self, base_url, username, password, missing):
        """Each required option is checked."""
        with pytest.raises(ConfigError, match=missing):
            Settings.from_options(base_url, username, password)

    def test_base_url_scheme(self):
        """The base URL must be http(s)."""
        with pytest.raises(ConfigError):
            Settings.from_options("cloud.example.com", "alice", "pw")

    def test_immutable(self):
        """Settings cannot be changed after startup."""
        settings = Settings.from_options("https://cloud", "alice", "pw")

        with pytest.raises(AttributeError):
            settings.password = "other"

    def test_repr_hides_password(self):
        """The password never shows up in repr."""
        settings = Settings.from_options("https://cloud", "alice", "hunter2")

        assert "hunter2" not in repr(settings)


class TestNaming:
    """Tests for directory and file naming."""

    def test_directory_name(self):
        """Directories are named by calendar date."""
        assert directory_name(datetime(2024, 1, 5, 13, 2, 3)) == "2024-01-05"

    def test_backup_filename(self):
        """Dump files are named by time of day."""
        assert backup_filename(datetime(2024, 1, 5, 13, 2, 3)) == "13:02:03"

    def test_retention_directory_name(self):
        """Three days before 2024-01-10 is 2024-01-07."""
        assert retention_directory_name(datetime(2024, 1, 10, 0, 0), 3) == "2024-01-07"

    def test_retention_crosses_month(self):
        """Retention arithmetic crosses month boundaries."""
        assert retention_directory_name(datetime(2024, 3, 2, 12, 0), 3) == "2024-02-28"

    def test_join_url(self):
        """Segments are joined with single slashes."""
        assert join_url("https://h/dav/", "/alice/", "2024-01-01") == "https://h/dav/alice/2024-01-01"

    def test_mask_sensitive(self):
        """Secrets are replaced, empty secrets ignored."""
        assert mask_sensitive("user:pw@host", ["pw", ""]) == "user:***@host"
