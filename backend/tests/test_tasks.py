"""
Tests for Celery Background Tasks

Tests cover:
- Celery app configuration and routing
- build_search_index batching (explicit ids + drained queue)
- Retries on embedding provider failure
- Task metrics
"""

import pytest
from unittest.mock import MagicMock, patch

from celery.exceptions import Retry

from folio.celery import celery_app
from folio.errors import ProviderError
from folio.services.indexer import BuildResult
from folio.tasks.search import build_search_index


class TestCeleryApp:
    """Test Celery app configuration."""

    def test_celery_app_exists(self):
        assert celery_app.main == "folio"

    def test_build_task_routed_to_search_queue(self):
        routes = celery_app.conf.task_routes
        assert routes["folio.tasks.search.build_search_index"] == {"queue": "search"}

    def test_build_task_registered(self):
        assert build_search_index.name == "folio.tasks.search.build_search_index"
        assert hasattr(build_search_index, "delay")
        assert build_search_index.max_retries == 3


class TestBuildSearchIndexTask:
    """Test build_search_index background task."""

    @pytest.fixture
    def build_queue(self):
        queue = MagicMock()
        queue.drain.return_value = ["user-2", "user-1"]
        queue.pending_count.return_value = 0
        return queue

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    def test_merges_explicit_and_queued_ids(self, mock_get_queue, mock_builder, build_queue):
        mock_get_queue.return_value = build_queue
        mock_builder.return_value.run.return_value = BuildResult(
            embeddings_updated=2, search_index_updated=2, total_processed=2
        )

        result = build_search_index.run(["user-1"])

        mock_builder.return_value.run.assert_called_once_with(["user-1", "user-2"])
        assert result["embeddings_updated"] == 2
        assert result["total_processed"] == 2

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    def test_sweep_without_ids(self, mock_get_queue, mock_builder, build_queue):
        build_queue.drain.return_value = []
        mock_get_queue.return_value = build_queue
        mock_builder.return_value.run.return_value = BuildResult()

        build_search_index.run()

        mock_builder.return_value.run.assert_called_once_with([])

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    def test_queue_unavailable_still_builds(self, mock_get_queue, mock_builder):
        mock_get_queue.side_effect = ConnectionError("redis down")
        mock_builder.return_value.run.return_value = BuildResult()

        build_search_index.run(["user-1"])

        mock_builder.return_value.run.assert_called_once_with(["user-1"])

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    def test_leftover_pending_ids_trigger_another_run(self, mock_get_queue, mock_builder, build_queue):
        build_queue.pending_count.return_value = 4
        mock_get_queue.return_value = build_queue
        mock_builder.return_value.run.return_value = BuildResult()

        with patch.object(build_search_index, "apply_async") as mock_apply:
            build_search_index.run()

        mock_apply.assert_called_once_with(countdown=0)

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    def test_provider_error_retries_same_batch(self, mock_get_queue, mock_builder, build_queue):
        mock_get_queue.return_value = build_queue
        mock_builder.return_value.run.side_effect = ProviderError("rate limited")

        with patch.object(build_search_index, "retry", side_effect=Retry()) as mock_retry:
            with pytest.raises(Retry):
                build_search_index.run(["user-1"])

        kwargs = mock_retry.call_args.kwargs
        assert kwargs["args"] == [["user-1", "user-2"]]
        assert kwargs["countdown"] == 60
        assert isinstance(kwargs["exc"], ProviderError)


class TestTaskMetrics:
    """Test that tasks emit metrics."""

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    @patch("folio.tasks.search.TASK_DURATION")
    def test_records_duration(self, mock_duration, mock_get_queue, mock_builder):
        mock_get_queue.return_value.drain.return_value = []
        mock_get_queue.return_value.pending_count.return_value = 0
        mock_builder.return_value.run.return_value = BuildResult()

        build_search_index.run()

        mock_duration.labels.assert_called_with(task_name="build_search_index")
        mock_duration.labels.return_value.observe.assert_called_once()

    @patch("folio.tasks.search.IndexBuilder")
    @patch("folio.tasks.search.get_build_queue")
    @patch("folio.tasks.search.TASK_FAILURES")
    def test_counts_failures(self, mock_failures, mock_get_queue, mock_builder):
        mock_get_queue.return_value.drain.return_value = []
        mock_get_queue.return_value.pending_count.return_value = 0
        mock_builder.return_value.run.side_effect = ProviderError("down")

        with patch.object(build_search_index, "retry", side_effect=Retry()):
            with pytest.raises(Retry):
                build_search_index.run()

        mock_failures.labels.assert_called_with(task_name="build_search_index")
