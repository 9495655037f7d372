"""Workspace root, path helpers and settings/state loading for TimeBlox."""

from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path

from timeblox.fileio import load_mapping, save_mapping
from timeblox.generation import CommandGenerator
from timeblox.masters import normalize_master_days
from timeblox.models import Settings
from timeblox.planner import PlannerState

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Directory holding settings.yaml and state.json."""
    return Path(
        os.environ.get("TIMEBLOX_ROOT", str(Path.home() / "timeblox"))
    ).expanduser().resolve()


def today_str() -> str:
    return date.today().isoformat()


# ── Path helpers ──────────────────────────────────────────────

def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def state_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "state.json"


# ── Settings ──────────────────────────────────────────────────

def load_settings(root: Path | None = None) -> Settings:
    return Settings.from_dict(load_mapping(settings_path(root)))


def save_settings(settings: Settings, root: Path | None = None) -> None:
    save_mapping(settings_path(root), settings.to_dict())


def make_generator(settings: Settings, root: Path | None = None) -> CommandGenerator:
    return CommandGenerator(
        settings.generator_command,
        timeout=settings.generator_timeout,
        cwd=root or workspace_root(),
    )


# ── Planner state ─────────────────────────────────────────────

def load_state(root: Path | None = None, settings: Settings | None = None) -> PlannerState:
    """Load the saved planner state.

    A workspace without state.json starts empty, with categories and master
    slot names taken from settings.
    """
    data = load_mapping(state_path(root))
    if data:
        return PlannerState.from_dict(data)
    if settings is None:
        settings = load_settings(root)
    logger.info("No saved state in %s, starting fresh", state_path(root).parent)
    return PlannerState(
        master_days=normalize_master_days(settings.master_days),
        categories=tuple(settings.categories),
    )


def save_state(state: PlannerState, root: Path | None = None) -> None:
    save_mapping(state_path(root), state.to_dict())
