"""Workspace file persistence for TimeBlox.

state.json and settings.yaml are mappings on disk. Saves replace the file in
a single rename while holding an exclusive lock on a sibling ``.lock`` file,
so the TUI and the API server never interleave their writes.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import yaml


LOCK_SUFFIX = ".lock"


class WorkspaceFileError(ValueError):
    """A workspace file exists but does not hold a mapping."""


def _parse(path: Path, text: str) -> Any:
    if path.suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def _serialize(path: Path, data: dict[str, Any]) -> str:
    if path.suffix == ".json":
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


def load_mapping(path: Path) -> dict[str, Any]:
    """Parse a .json or .yaml workspace file. Missing or blank files give {}."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    if not text.strip():
        return {}
    try:
        data = _parse(path, text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise WorkspaceFileError(f"{path.name} is not readable: {exc}") from exc
    if not isinstance(data, dict):
        raise WorkspaceFileError(f"{path.name} must hold a mapping, got {type(data).__name__}")
    return data


@contextmanager
def workspace_lock(path: Path) -> Iterator[None]:
    """Exclusive lock guarding saves of *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path.with_name(path.name + LOCK_SUFFIX), "w") as lock:
        fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock.fileno(), fcntl.LOCK_UN)


def save_mapping(path: Path, data: dict[str, Any]) -> None:
    """Serialize *data* by the file's suffix and swap it in atomically."""
    content = _serialize(path, data)
    with workspace_lock(path):
        tmp = tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        )
        try:
            with tmp:
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp.name, path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise
