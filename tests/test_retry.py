from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from trellor import FormatError, HttpError, RetryPolicy, call_with_retry


def _server_error(status: int = 503) -> HttpError:
    return HttpError(status, "Service Unavailable", "try again later")


def test_no_retry_on_success():
    fetch = MagicMock(return_value=[1, 2])

    assert call_with_retry(fetch, "url", paging=True) == [1, 2]
    fetch.assert_called_once_with("url", paging=True)


@patch("trellor.retry.time.sleep")
def test_transient_error_is_retried(sleep):
    fetch = MagicMock(side_effect=[_server_error(), _server_error(429), "ok"])

    result = call_with_retry(fetch, policy=RetryPolicy(max_attempts=3, delay_s=2.0))

    assert result == "ok"
    assert fetch.call_count == 3
    sleep.assert_called_with(2.0)
    assert sleep.call_count == 2


@patch("trellor.retry.time.sleep")
def test_last_error_is_raised_when_attempts_run_out(sleep):
    fetch = MagicMock(side_effect=_server_error(500))

    with pytest.raises(HttpError) as excinfo:
        call_with_retry(fetch, policy=RetryPolicy(max_attempts=2, delay_s=0))

    assert excinfo.value.status == 500
    assert fetch.call_count == 2


@patch("trellor.retry.time.sleep")
def test_client_errors_are_not_retried(sleep):
    fetch = MagicMock(side_effect=HttpError(401, "Unauthorized", "invalid token"))

    with pytest.raises(HttpError):
        call_with_retry(fetch)

    fetch.assert_called_once()
    sleep.assert_not_called()


@patch("trellor.retry.time.sleep")
def test_format_errors_are_not_retried(sleep):
    fetch = MagicMock(side_effect=FormatError("text/html", "<html>"))

    with pytest.raises(FormatError):
        call_with_retry(fetch)

    fetch.assert_called_once()
    sleep.assert_not_called()
