import os


def available_units() -> int:
    """Parallel-processing units visible to this process (at least 1)."""
    return os.cpu_count() or 1


def pool_size(ceiling: int) -> int:
    """Worker pool size: available units, floor 1, capped at *ceiling*."""
    return max(1, min(available_units(), ceiling))


def is_ai_capable(min_units: int) -> bool:
    return available_units() >= min_units
