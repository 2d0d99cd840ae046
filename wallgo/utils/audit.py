import json
import os
from datetime import datetime, timezone
from typing import Any, Dict

# Maintain per-game filename base so all writes go to the same timestamped file
_GAME_FILE_BASE: Dict[str, str] = {}


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _log_dir() -> str:
    """WALLGO_LOG_DIR if set, else logs/games relative to the repo root."""
    configured = os.getenv("WALLGO_LOG_DIR")
    if configured:
        return os.path.abspath(configured)
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "logs", "games"))


def _file_base_for(game_id: str) -> str:
    """Return a stable '<timestamp>_<game_id>' base for this process."""
    if game_id in _GAME_FILE_BASE:
        return _GAME_FILE_BASE[game_id]
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    base = f"{ts}_{game_id}"
    _GAME_FILE_BASE[game_id] = base
    return base


def game_log_path(game_id: str) -> str:
    return os.path.join(_log_dir(), f"{_file_base_for(game_id)}.log")


def game_write(game_id: str, record: Dict[str, Any]) -> None:
    """Append a structured JSON line to the per-game audit log.

    The file is stored under <log dir>/<timestamp>_<game_id>.log.
    """
    record = dict(record)
    record.setdefault("ts", datetime.now(timezone.utc).isoformat())
    record.setdefault("game_id", game_id)
    try:
        _ensure_dir(_log_dir())
        with open(game_log_path(game_id), "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError:
        # Never raise from audit logging; it's best-effort.
        pass


def forget_game(game_id: str) -> None:
    """Drop the cached file base once a game is closed."""
    _GAME_FILE_BASE.pop(game_id, None)
