"""Repository audit logging.

Appends structured JSON entries to <repository>/logs.jsonl.
Each entry records a repository event (init, save, restore, restore_failed)
with timestamp, snapshot id and the paths involved.
"""

import json
from datetime import datetime
from pathlib import Path

LOGS_FILE = "logs.jsonl"


def logs_path(repo_root):
    return Path(repo_root) / LOGS_FILE


def write_log(repo_root, entry):
    """Append a log entry."""
    path = logs_path(repo_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    entry = {**entry, "timestamp": datetime.now().isoformat()}
    with open(path, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_log(repo_root):
    """Read all log entries, skipping malformed lines."""
    path = logs_path(repo_root)
    if not path.exists():
        return []
    entries = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            entries.append(entry)
    return entries
