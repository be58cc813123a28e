"""
Tests for configuration loading.
"""

from deal_sync.config import Config


class TestConfig:
    def test_validate_reports_missing(self, monkeypatch):
        monkeypatch.setattr(Config, 'DATABASE_URL', '')
        monkeypatch.setattr(Config, 'PIPEDRIVE_API_TOKEN', '')

        missing = Config.validate()

        assert 'DATABASE_URL' in missing
        assert 'PIPEDRIVE_API_TOKEN' in missing

    def test_validate_complete(self, monkeypatch):
        monkeypatch.setattr(Config, 'DATABASE_URL', 'postgresql://u:p@localhost/db')
        monkeypatch.setattr(Config, 'PIPEDRIVE_API_TOKEN', 'token')
        monkeypatch.setattr(Config, 'PIPEDRIVE_BASE_URL', 'https://api.pipedrive.com/v1')

        assert Config.validate() == []

    def test_neon_urls_use_ssl(self, monkeypatch):
        monkeypatch.setattr(Config, 'DATABASE_SSL', False)
        monkeypatch.setattr(Config, 'DATABASE_URL', 'postgresql://u:p@ep-1.eu-central-1.aws.neon.tech/db')

        assert Config.use_ssl() is True

    def test_local_urls_do_not_use_ssl(self, monkeypatch):
        monkeypatch.setattr(Config, 'DATABASE_SSL', False)
        monkeypatch.setattr(Config, 'DATABASE_URL', 'postgresql://u:p@localhost/db')

        assert Config.use_ssl() is False

