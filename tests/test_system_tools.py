"""
Tests for the built-in system operations.
"""

import re
from datetime import datetime
from unittest.mock import patch

import pytest

from toolgate.tools.system import (
    TimeFormat,
    get_current_time,
    get_number_of_cpu_cores,
    get_os_info,
    get_vector_similarity,
)


class TestGetCurrentTime:
    """Test the get_current_time operation."""

    def test_iso_is_default(self):
        result = get_current_time()
        assert datetime.fromisoformat(result).tzinfo is not None

    def test_unix_timestamp(self):
        result = get_current_time(TimeFormat.UNIX)
        assert result.isdigit()

    def test_rfc2822(self):
        result = get_current_time(TimeFormat.RFC2822, utc=True)
        assert re.match(r"^\w{3}, \d{2} \w{3} \d{4} \d{2}:\d{2}:\d{2} \+0000$", result)

    def test_utc_offset(self):
        result = get_current_time(utc=True)
        assert datetime.fromisoformat(result).utcoffset().total_seconds() == 0


class TestGetNumberOfCpuCores:
    """Test the get_number_of_cpu_cores operation."""

    def test_returns_positive_count(self):
        assert get_number_of_cpu_cores() >= 1

    def test_unknown_count_falls_back_to_one(self, caplog):
        with patch("toolgate.tools.system.os.cpu_count", return_value=None):
            assert get_number_of_cpu_cores() == 1
        assert "CPU core count" in caplog.text


class TestGetVectorSimilarity:
    """Test the get_vector_similarity operation."""

    def test_identical_vectors(self):
        assert get_vector_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert get_vector_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.5)

    def test_opposite_vectors(self):
        assert get_vector_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(0.0)

    def test_zero_magnitude_scores_zero(self):
        assert get_vector_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_empty_vector_raises(self):
        with pytest.raises(ValueError, match="empty"):
            get_vector_similarity([], [1.0])

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError, match="same length"):
            get_vector_similarity([1.0, 2.0], [1.0])


class TestGetOsInfo:
    """Test the get_os_info operation."""

    def test_returns_system_info(self):
        result = get_os_info()

        for key in ("system", "node", "release", "machine", "processor", "python_version"):
            assert key in result
        assert result["python_implementation"] in ["CPython", "PyPy", "Jython", "IronPython"]

    def test_unknown_processor(self):
        with patch("toolgate.tools.system.platform.processor", return_value=""):
            assert get_os_info()["processor"] == "Unknown"
