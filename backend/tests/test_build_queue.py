"""
Tests for the debounced search build queue.

Redis is replaced by a MagicMock; dispatch is a plain Mock so the
countdown passed to Celery can be asserted.
"""
from unittest.mock import MagicMock, Mock

import pytest

from folio.services.build_queue import PENDING_KEY, SCHEDULED_KEY, SearchBuildQueue


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.scard.return_value = 1
    client.set.return_value = True
    return client


@pytest.fixture
def dispatch():
    return Mock()


@pytest.fixture
def queue(redis_client, dispatch):
    return SearchBuildQueue(redis_client, window=30, max_batch=5, dispatch=dispatch)


class TestEnqueue:
    """Tests for SearchBuildQueue.enqueue."""

    def test_first_request_schedules_delayed_build(self, queue, redis_client, dispatch):
        queue.enqueue("user-1")

        redis_client.sadd.assert_called_once_with(PENDING_KEY, "user-1")
        redis_client.set.assert_called_once_with(SCHEDULED_KEY, "1", nx=True, ex=30)
        dispatch.assert_called_once_with(30)

    def test_requests_inside_window_coalesce(self, queue, redis_client, dispatch):
        redis_client.scard.return_value = 2
        redis_client.set.return_value = None  # marker already present

        queue.enqueue("user-2")

        dispatch.assert_not_called()

    def test_full_batch_dispatches_immediately(self, queue, redis_client, dispatch):
        redis_client.scard.return_value = 5

        queue.enqueue("user-5")

        dispatch.assert_called_once_with(0)
        redis_client.set.assert_not_called()

    def test_blank_user_id_ignored(self, queue, redis_client, dispatch):
        queue.enqueue("")

        redis_client.sadd.assert_not_called()
        dispatch.assert_not_called()

    def test_redis_errors_propagate(self, queue, redis_client):
        redis_client.sadd.side_effect = ConnectionError("redis down")

        with pytest.raises(ConnectionError):
            queue.enqueue("user-1")


class TestDrain:
    """Tests for SearchBuildQueue.drain."""

    def test_drain_pops_up_to_max_batch(self, queue, redis_client):
        redis_client.spop.return_value = ["user-b", "user-a"]
        redis_client.scard.return_value = 0

        assert queue.drain() == ["user-a", "user-b"]
        redis_client.spop.assert_called_once_with(PENDING_KEY, 5)

    def test_empty_queue_clears_schedule_marker(self, queue, redis_client):
        redis_client.spop.return_value = []
        redis_client.scard.return_value = 0

        assert queue.drain() == []
        redis_client.delete.assert_called_once_with(SCHEDULED_KEY)

    def test_marker_kept_while_ids_remain(self, queue, redis_client):
        redis_client.spop.return_value = ["user-a"]
        redis_client.scard.return_value = 3

        queue.drain(limit=1)

        redis_client.spop.assert_called_once_with(PENDING_KEY, 1)
        redis_client.delete.assert_not_called()

    def test_missing_set_returns_empty_list(self, queue, redis_client):
        redis_client.spop.return_value = None
        redis_client.scard.return_value = 0

        assert queue.drain() == []
