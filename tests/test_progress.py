import io
import threading
from unittest.mock import patch

import pytest

from rforest.progress import ProgressReporter, beautify_time, equal_split


@pytest.mark.parametrize(
    ("start", "end", "parts", "expected"),
    [
        (0, 9, 1, [0, 10]),
        (0, 7, 4, [0, 2, 4, 6, 8]),
        (2, 7, 2, [2, 5, 8]),
        (13, 24, 3, [13, 17, 21, 25]),
        (0, 6, 4, [0, 2, 4, 6, 7]),
        (2, 12, 5, [2, 5, 7, 9, 11, 13]),
        (15, 19, 2, [15, 18, 20]),
        (30, 35, 1, [30, 36]),
        (0, 2, 6, [0, 1, 2, 3]),
        (0, 2, 4, [0, 1, 2, 3]),
        (0, 2, 3, [0, 1, 2, 3]),
    ],
)
def test_equal_split(start, end, parts, expected):
    assert equal_split(start, end, parts) == expected


def test_equal_split_zero_parts():
    with pytest.raises(ValueError):
        equal_split(0, 5, 0)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0 seconds"),
        (30, "30 seconds"),
        (60, "1 minute, 0 seconds"),
        (2317, "38 minutes, 37 seconds"),
        (3600, "1 hour, 0 minutes, 0 seconds"),
        (13498, "3 hours, 44 minutes, 58 seconds"),
        (86400, "1 day, 0 hours, 0 minutes, 0 seconds"),
        (287345, "3 days, 7 hours, 49 minutes, 5 seconds"),
    ],
)
def test_beautify_time(seconds, expected):
    assert beautify_time(seconds) == expected


def test_reporter_message_after_interval():
    out = io.StringIO()
    with patch("rforest.progress.time.monotonic", side_effect=[0.0, 40.0]):
        reporter = ProgressReporter("Growing trees..", 4, out, 30)
        message = reporter.advance()
    expected = "Growing trees.. Progress: 25%. Estimated remaining time: 2 minutes, 0 seconds."
    assert message == expected
    assert out.getvalue() == expected + "\n"


def test_reporter_silent_within_interval():
    out = io.StringIO()
    with patch("rforest.progress.time.monotonic", side_effect=[0.0, 10.0, 20.0]):
        reporter = ProgressReporter("Predicting..", 10, out, 30)
        assert reporter.advance() is None
        assert reporter.advance() is None
    assert out.getvalue() == ""
    assert reporter.progress == 2


def test_reporter_counts_from_threads():
    reporter = ProgressReporter("Predicting..", 400, None, 1000)
    threads = [threading.Thread(target=lambda: [reporter.advance() for _ in range(100)]) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert reporter.progress == 400
    assert reporter.done is True