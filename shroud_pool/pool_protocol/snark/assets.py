"""Helpers to resolve the withdrawal verifying key shipped with a deployment."""

from __future__ import annotations

from pathlib import Path
import os
from typing import Iterable

VK_FILENAME = "withdraw_vk.json"


def resolve_vk(base_dir: str | Path | None = None) -> Path:
    """
    Resolve the verifying key path.

    Order: explicit ``base_dir``, ``SHROUD_VK_PATH`` (file or directory),
    then the ``params`` directory next to this module.
    """
    candidates = []
    if base_dir is not None:
        candidates.append(Path(base_dir) / VK_FILENAME)

    env_path = os.getenv("SHROUD_VK_PATH")
    if env_path:
        env_candidate = Path(env_path)
        if env_candidate.is_dir():
            env_candidate = env_candidate / VK_FILENAME
        candidates.append(env_candidate)

    candidates.append(_default_params_dir() / VK_FILENAME)
    return _first_existing(candidates, "withdraw verifying key")


def _default_params_dir() -> Path:
    return Path(__file__).resolve().parent / "params"


def _first_existing(candidates: Iterable[Path], label: str) -> Path:
    candidates = list(candidates)
    for path in candidates:
        if path.is_file():
            return path
    raise FileNotFoundError(
        f"Unable to resolve {label}. Checked: {', '.join(str(p) for p in candidates)}"
    )
