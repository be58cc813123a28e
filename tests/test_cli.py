"""
Tests for the deal-sync command line.
"""

import argparse
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from deal_sync import cli
from deal_sync.errors import PipedriveNotFoundError


def _async_cm(obj):
    """Make a MagicMock usable with ``async with``."""
    obj.__aenter__ = AsyncMock(return_value=obj)
    obj.__aexit__ = AsyncMock(return_value=False)
    return obj


@pytest.fixture
def clients():
    storage = _async_cm(MagicMock())
    storage.ensure_schema = AsyncMock()
    crm = _async_cm(MagicMock())
    pipeline = MagicMock()
    pipeline.sync_deal = AsyncMock(return_value=MagicMock(deal_id=17))

    with patch.object(cli, 'PostgresClient', return_value=storage), patch.object(
        cli, 'PipedriveClient', return_value=crm
    ), patch.object(cli, 'DealSyncPipeline', return_value=pipeline), patch.object(cli, 'configure_logging'):
        yield storage, crm, pipeline


class TestSyncDealCommand:
    def test_success(self, clients, capsys):
        storage, _, pipeline = clients

        exit_code = cli.main(['sync-deal', '--id', '123'])

        assert exit_code == 0
        pipeline.sync_deal.assert_awaited_once_with(123)
        assert 'Deal 123 synchronized successfully (local id 17)' in capsys.readouterr().out
        storage.__aexit__.assert_awaited_once()

    def test_failure_reports_and_releases_storage(self, clients, capsys):
        storage, crm, pipeline = clients
        pipeline.sync_deal.side_effect = PipedriveNotFoundError('Deal 123 not found in Pipedrive')

        exit_code = cli.main(['sync-deal', '--id', '123'])

        assert exit_code == 1
        assert 'Deal 123 not found in Pipedrive' in capsys.readouterr().err
        storage.__aexit__.assert_awaited_once()
        crm.__aexit__.assert_awaited_once()

    @pytest.mark.parametrize('value', ['0', '-4', 'abc', '1.5'])
    def test_invalid_id_rejected_before_io(self, clients, value):
        _, _, pipeline = clients

        with pytest.raises(SystemExit) as exc_info:
            cli.main(['sync-deal', '--id', value])

        assert exc_info.value.code == 2
        cli.PostgresClient.assert_not_called()
        pipeline.sync_deal.assert_not_called()

    def test_missing_id(self, clients):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(['sync-deal'])

        assert exc_info.value.code == 2


class TestInitDbCommand:
    def test_provisions_schema(self, clients, capsys):
        storage, _, _ = clients

        assert cli.main(['init-db']) == 0
        storage.ensure_schema.assert_awaited_once()
        storage.__aexit__.assert_awaited_once()


class TestPositiveInt:
    def test_accepts_positive(self):
        assert cli.positive_int('42') == 42

    @pytest.mark.parametrize('value', ['0', '-1', 'x'])
    def test_rejects(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.positive_int(value)
