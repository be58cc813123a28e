"""
Tests for the logging module.
"""

import pytest

from deal_sync.logging import SyncTimer, current_log_context, logging_context, new_trace_id


class TestLoggingContext:
    """Test per-sync log context binding."""

    def test_binds_fields(self):
        with logging_context(trace_id='trace_123', deal_id=123):
            context = current_log_context()

        assert context['trace_id'] == 'trace_123'
        assert context['deal_id'] == 123

    def test_nested_contexts_restore(self):
        with logging_context(deal_id=1):
            assert current_log_context()['deal_id'] == 1

            with logging_context(deal_id=2):
                assert current_log_context()['deal_id'] == 2

            assert current_log_context()['deal_id'] == 1

        assert 'deal_id' not in current_log_context()

    def test_none_values_not_bound(self):
        with logging_context(trace_id='trace_only', deal_id=None):
            context = current_log_context()

        assert context['trace_id'] == 'trace_only'
        assert 'deal_id' not in context

    def test_unbound_after_error(self):
        with pytest.raises(RuntimeError):
            with logging_context(deal_id=5):
                raise RuntimeError('boom')

        assert 'deal_id' not in current_log_context()

    def test_trace_ids_are_unique(self):
        ids = {new_trace_id() for _ in range(50)}

        assert len(ids) == 50
        assert all(ids)


class TestSyncTimer:
    """Test sync stage timing."""

    def test_timer_records_stages(self):
        timer = SyncTimer()

        with timer.stage('fetch'):
            pass

        with timer.stage('upsert_entities'):
            pass

        assert timer.stages['fetch'] >= 0
        assert timer.stages['upsert_entities'] >= 0

    def test_timer_records_stage_on_error(self):
        timer = SyncTimer()

        with pytest.raises(RuntimeError):
            with timer.stage('failing'):
                raise RuntimeError('boom')

        assert 'failing' in timer.stages

    def test_summary(self):
        timer = SyncTimer()
        with timer.stage('notes'):
            pass

        summary = timer.summary()

        assert summary['total_ms'] >= 0
        assert set(summary['stages']) == {'notes'}
