"""
Built-in read-only system operations exposed to the model by the default
configuration.

These use only the standard library; they exist so a fresh install has a
useful, harmless tool surface.
"""

import enum
import logging
import math
import os
import platform
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List

logger = logging.getLogger("tools.system")


class TimeFormat(enum.Enum):
    ISO = "iso"
    UNIX = "unix"
    RFC2822 = "rfc2822"


def get_current_time(time_format: TimeFormat = TimeFormat.ISO, utc: bool = False) -> str:
    """
    Return the current date and time.

    Args:
        time_format: Output format: ISO 8601, seconds since the Unix epoch,
            or RFC 2822.
        utc: Report UTC instead of local time.
    """
    now = datetime.now(timezone.utc) if utc else datetime.now().astimezone()
    if time_format is TimeFormat.UNIX:
        return str(int(now.timestamp()))
    if time_format is TimeFormat.RFC2822:
        return now.strftime("%a, %d %b %Y %H:%M:%S %z")
    return now.isoformat()


def get_number_of_cpu_cores() -> int:
    """Return the number of logical CPU cores available on this machine."""
    count = os.cpu_count()
    if count is None:
        logger.warning("Could not determine the CPU core count, assuming 1.")
        return 1
    return count


def get_vector_similarity(vector1: List[float], vector2: List[float]) -> float:
    """
    Calculate the cosine similarity between two vectors, scaled to 0..1.

    0 means opposite, 0.5 unrelated and 1 identical direction. Vectors with
    zero magnitude have no direction and score 0.

    Args:
        vector1: First vector of numbers, e.g. [0.12, -0.45, 0.89].
        vector2: Second vector of numbers; must be the same length as vector1.
    """
    if not vector1 or not vector2:
        raise ValueError("Vectors cannot be empty.")
    if len(vector1) != len(vector2):
        raise ValueError("vector1 and vector2 must have the same length.")

    dot = sum(a * b for a, b in zip(vector1, vector2))
    magnitude1 = math.sqrt(sum(a * a for a in vector1))
    magnitude2 = math.sqrt(sum(b * b for b in vector2))
    if magnitude1 == 0 or magnitude2 == 0:
        logger.info("Zero-magnitude vector, similarity is undefined.")
        return 0.0

    similarity = max(-1.0, min(1.0, dot / (magnitude1 * magnitude2)))
    return round((similarity + 1) / 2, 6)


def get_os_info() -> Dict[str, Any]:
    """Return operating system and Python runtime details."""
    return {
        "system": platform.system(),
        "node": platform.node(),
        "release": platform.release(),
        "version": platform.version(),
        "machine": platform.machine(),
        "processor": platform.processor() or "Unknown",
        "python_version": platform.python_version(),
        "python_implementation": platform.python_implementation(),
        "python_executable": sys.executable,
    }
