"""
Helpers for loading imgship environment configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

IMGSHIP_ENV_FILENAME = "imgship.env"


def default_env_path() -> Path:
    return Path.home() / IMGSHIP_ENV_FILENAME


def load_env(path: Optional[Path] = None) -> None:
    """
    Load ``.env`` from the working directory, then ``path`` (``~/imgship.env`` by default).

    Variables already present in the process environment are not overridden.
    """
    load_dotenv()
    env_path = Path(path) if path is not None else default_env_path()
    if env_path.is_file():
        load_dotenv(env_path)
