# tests/test_counters.py
import asyncio

import pytest

from app.search.counters import PopularityCounter
from .test_utils import print_test_name, print_test_result


@pytest.mark.asyncio
class TestPopularityCounter:
    """Incréments atomiques, attendus ou détachés."""

    async def test_increment_issues_atomic_update(self, mock_db_connector):
        counter = PopularityCounter(mock_db_connector)
        found = await counter.increment("sales", "abc", "clicks")
        sql, entity_id = mock_db_connector.execute.call_args.args
        assert sql == "UPDATE sales SET clicks = COALESCE(clicks, 0) + 1 WHERE id = $1"
        assert entity_id == "abc"
        assert found is True

    async def test_increment_reports_missing_row(self, mock_db_connector):
        mock_db_connector.execute.return_value = "UPDATE 0"
        counter = PopularityCounter(mock_db_connector)
        assert await counter.increment("stores", "abc") is False

    async def test_unknown_counter_rejected(self, mock_db_connector):
        counter = PopularityCounter(mock_db_connector)
        with pytest.raises(ValueError):
            await counter.increment("users", "abc")
        with pytest.raises(ValueError):
            counter.bump("sales", "abc", "price")

    async def test_bump_failure_is_swallowed(self, mock_db_connector):
        test_name = "test_bump_failure_is_swallowed"
        print_test_name(test_name)
        try:
            # --- Arrange ---
            mock_db_connector.execute.side_effect = ConnectionError("db down")
            counter = PopularityCounter(mock_db_connector)

            # --- Act ---
            task = counter.bump("sales", "abc")
            await task

            # --- Assert ---
            assert task.exception() is None
            mock_db_connector.execute.assert_called_once()
            await asyncio.sleep(0)
            assert not counter._pending  # pylint: disable=protected-access
            print_test_result(test_name, passed=True)
        except Exception as e:
            print_test_result(test_name, passed=False)
            raise e

    async def test_drain_waits_for_pending(self, mock_db_connector):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_execute(sql, *args):
            started.set()
            await release.wait()
            return "UPDATE 1"

        mock_db_connector.execute.side_effect = slow_execute
        counter = PopularityCounter(mock_db_connector)
        task = counter.bump("stores", "abc")
        await started.wait()
        assert not task.done()

        release.set()
        await counter.drain(timeout=1)
        assert task.done()
