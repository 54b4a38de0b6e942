import pytest

from cpm.core.utils import format_duration, sanitize_input


@pytest.mark.parametrize(
    "ms, expected",
    [
        (0, "0s"),
        (-5000, "0s"),
        (999, "0s"),
        (1000, "1s"),
        (59_999, "59s"),
        (61_000, "1m 1s"),
        (3_599_000, "59m 59s"),
        (3_600_000, "1h 0m 0s"),
        (1 * 3_600_000 + 23 * 60_000 + 45 * 1000, "1h 23m 45s"),
        (26 * 3_600_000 + 5_000, "26h 0m 5s"),
        (61_500.7, "1m 1s"),
    ],
)
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


def test_sanitize_input():
    assert sanitize_input("<b onclick=\"x\">it's</b>") == "&lt;b onclick=&quot;x&quot;&gt;it&#039;s&lt;/b&gt;"
    assert sanitize_input("") == ""


def test_format_duration_keeps_precision_for_large_ints():
    ms = (10**18 + 1) * 3_600_000 + 59_999
    assert format_duration(ms) == f"{10**18 + 1}h 0m 59s"


@pytest.mark.parametrize("ms", [float("nan"), float("inf"), float("-inf")])
def test_format_duration_non_finite_is_zero(ms):
    assert format_duration(ms) == "0s"
