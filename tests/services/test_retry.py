"""Unit tests for matchplay/services/retry.py"""

from unittest.mock import Mock

import pytest

from matchplay.core.exceptions import NotYourTurnError, StoreUnavailableError
from matchplay.services.retry import retry_store_call


def test_success_on_first_attempt() -> None:
    sleep = Mock()
    assert retry_store_call(lambda: 42, attempts=3, backoff=0.1, sleep=sleep) == 42
    sleep.assert_not_called()


def test_transient_failures_are_retried_with_backoff() -> None:
    operation = Mock(side_effect=[StoreUnavailableError("down"), StoreUnavailableError("down"), "ok"])
    sleep = Mock()

    assert retry_store_call(operation, attempts=3, backoff=0.1, sleep=sleep) == "ok"
    assert operation.call_count == 3
    assert [call.args[0] for call in sleep.call_args_list] == pytest.approx([0.1, 0.2])


def test_last_failure_is_raised() -> None:
    operation = Mock(side_effect=StoreUnavailableError("down"))
    with pytest.raises(StoreUnavailableError):
        retry_store_call(operation, attempts=3, backoff=0.0, sleep=Mock())
    assert operation.call_count == 3


def test_other_errors_are_not_retried() -> None:
    """A refused move stays refused: no point in asking again."""
    operation = Mock(side_effect=NotYourTurnError("wait"))
    with pytest.raises(NotYourTurnError):
        retry_store_call(operation, attempts=3, backoff=0.0, sleep=Mock())
    assert operation.call_count == 1


def test_at_least_one_attempt() -> None:
    assert retry_store_call(lambda: "once", attempts=0, backoff=0.0, sleep=Mock()) == "once"
