"""Service logger writing to data/logs.txt, with line-capped truncation for the tail endpoint."""

from __future__ import annotations

import logging

from imageecology.core.paths import get_data_path

DATA_DIR = get_data_path()
DATA_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = "logs.txt"

# Keep the newest MAX_LOG_LINES once the file grows past TRUNCATE_THRESHOLD
MAX_LOG_LINES = 10000
TRUNCATE_THRESHOLD = 15000


def truncate_log_file() -> None:
    """Trim the service log to its newest MAX_LOG_LINES lines.

    Runs on import and before every tail read so the file never grows
    without bound. The rewrite goes through a temp file and a rename.
    """
    log_path = get_data_path(LOG_FILE)

    if not log_path.exists():
        return

    try:
        with open(log_path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.readlines()

        if len(lines) > TRUNCATE_THRESHOLD:
            kept = lines[-MAX_LOG_LINES:]
            temp_path = log_path.with_suffix(".txt.tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                f.writelines(kept)
            temp_path.replace(log_path)
            print(f"LOG_ROTATION: Truncated {len(lines)} lines to {len(kept)} lines")
    except OSError as e:
        print(f"LOG_ROTATION_ERROR: Failed to truncate log file: {e}")


def read_log_tail(lines: int) -> tuple[list[str], int]:
    """Return the last ``lines`` log lines and the total line count."""
    log_path = get_data_path(LOG_FILE)
    if not log_path.exists():
        return [], 0

    with open(log_path, "r", encoding="utf-8", errors="replace") as f:
        all_lines = f.readlines()

    tail = all_lines[-lines:] if lines > 0 else []
    return [line.rstrip("\n") for line in tail], len(all_lines)


truncate_log_file()

logging.basicConfig(
    filename=str(get_data_path(LOG_FILE)),
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)

log = logging.getLogger("image-ecology")
