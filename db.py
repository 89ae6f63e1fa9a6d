import os
from pathlib import Path

from reactions.events import DB_PATH, InteractionLog


def get_db_path() -> Path:
    return Path(os.getenv("REACTIONS_DB", str(DB_PATH)))


def get_log() -> InteractionLog:
    return InteractionLog(get_db_path())
