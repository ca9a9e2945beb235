from __future__ import annotations

from pathlib import Path

# Project root: backend/imageecology/core/paths.py -> four parents up
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Runtime data (logs) lives at project root
DATA_DIR = PROJECT_ROOT / "data"


def get_data_path(filename: str = "") -> Path:
    """Get path to file in the data directory.

    Args:
        filename: Optional filename to append to data directory path

    Returns:
        Path object pointing to data/ or data/filename
    """
    if filename:
        return DATA_DIR / filename
    return DATA_DIR
