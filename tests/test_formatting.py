"""Tests for byte formatting used in download status text."""

import pytest

from common.formatting import format_bytes


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, "0 bytes"),
        (512, "512 bytes"),
        (1023, "1023 bytes"),
        (1024, "1.00 KB"),
        (1536, "1.50 KB"),
        (1024 * 1024 - 1, "1024.00 KB"),
        (1024 * 1024, "1.00 MB"),
        (2_097_152, "2.00 MB"),
        (5_242_880, "5.00 MB"),
        (1024 ** 3 - 1, "1024.00 MB"),
        (1024 ** 3, "1.00 GB"),
        (3 * 1024 ** 3 + 512 * 1024 ** 2, "3.50 GB"),
    ],
)
def test_format_bytes_unit_boundaries(value, expected):
    assert format_bytes(value) == expected


def test_format_bytes_rejects_negative():
    with pytest.raises(ValueError):
        format_bytes(-1)
