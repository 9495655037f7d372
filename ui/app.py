from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path
from typing import Any, Callable

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from timeblox import (
    EXTEND_MINUTES,
    SHORTEN_MINUTES,
    ActivityCategory,
    GenerationError,
    PlannerState,
    ScheduleGenerator,
    Settings,
    TimeBlock,
    WorkspaceFileError,
    add_category as _add_category,
    begin_day_drag,
    change_duration,
    confirm,
    copy_indicator,
    delete_category as _delete_category,
    generate_day,
    is_valid_time,
    load_settings,
    load_state,
    make_generator,
    parse_date_key,
    parse_month_key,
    parse_time,
    request_clear_day,
    request_copy_day,
    request_delete_block,
    request_delete_master,
    request_drop,
    request_new_block,
    request_paste_month,
    resize_item,
    save_item,
    save_state,
    schedule_to_text,
    today_str as _today_str,
    ultimate_source,
    update_category as _update_category,
    validate_block,
    workspace_root as _workspace_root,
)
from timeblox.proposals import Request

logging.basicConfig(
    level=os.environ.get("TIMEBLOX_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


# ── Auth ──────────────────────────────────────────────────────

app = FastAPI(title="TimeBlox", version="0.1.0")

security = HTTPBasic(auto_error=False)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("TIMEBLOX_USERNAME", "")
    expected_password = os.environ.get("TIMEBLOX_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


def get_generator() -> ScheduleGenerator:
    root = _workspace_root()
    return make_generator(load_settings(root), root)


# ── State helpers ─────────────────────────────────────────────

def _load() -> tuple[Path, Settings, PlannerState]:
    root = _workspace_root()
    try:
        settings = load_settings(root)
        return root, settings, load_state(root, settings)
    except WorkspaceFileError as exc:
        logger.error("Cannot load workspace %s: %s", root, exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _check_date(date_key: str) -> None:
    try:
        parse_date_key(date_key)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date_key}")


def _check_month(month: str) -> None:
    try:
        parse_month_key(month)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid month: {month}")


def _run(fn: Callable[..., Any], *args: Any) -> Any:
    """Call a planner operation, mapping programmer errors to HTTP errors."""
    try:
        return fn(*args)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _minutes(payload: dict[str, Any], text_key: str, minutes_key: str) -> int:
    """Read a time from the payload, either as clock text or as minutes."""
    if minutes_key in payload:
        try:
            return int(payload[minutes_key])
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail=f"Invalid {minutes_key}: {payload[minutes_key]!r}")
    text = str(payload.get(text_key, ""))
    if not is_valid_time(text):
        raise HTTPException(status_code=400, detail=f"Invalid {text_key}: {text!r} (expected e.g. '9:00 AM')")
    return parse_time(text)


def _delta(payload: dict[str, Any], default: int) -> int:
    value = payload.get("minutes", default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid minutes: {value!r}")


def _day_payload(state: PlannerState, settings: Settings, date_key: str) -> dict[str, Any]:
    source = state.copy_links.get(date_key)
    return {
        "date": date_key,
        "schedule": [b.to_dict() for b in state.schedule_for(date_key)],
        "source": ultimate_source(state.copy_links, source) if source else None,
        "isMaster": state.is_master(date_key),
        "indicator": copy_indicator(state, date_key) if settings.show_copy_indicators else None,
    }


def _settle(root: Path, settings: Settings, request: Request, confirmed: bool, date_key: str | None = None) -> dict[str, Any]:
    """Persist a request's outcome, or ask for confirmation first."""
    state, proposal = request
    if proposal is not None:
        if not confirmed:
            return {"ok": False, "needsConfirmation": True, **proposal.to_dict()}
        state = _run(confirm, state, proposal)
    save_state(state, root)
    out: dict[str, Any] = {"ok": True}
    if date_key is not None:
        out["day"] = _day_payload(state, settings, date_key)
    return out


# ── Pages ─────────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/", response_class=HTMLResponse)
def index(username: str = Depends(get_current_user)) -> HTMLResponse:
    """Read-only view of today's schedule."""
    _, settings, state = _load()
    today = _today_str()
    rows = []
    for b in state.schedule_for(today):
        notes = f'<div class="muted">{_escape(b.notes)}</div>' if b.notes else ""
        rows.append(
            f'<li class="{_escape(b.color)}"><span class="mono">{_escape(b.start_time)} - {_escape(b.end_time)}</span> '
            f"{_escape(b.title)} <span class=\"pill\">{_escape(b.category)}</span>{notes}</li>"
        )
    body = "<ol>" + "".join(rows) + "</ol>" if rows else '<p class="muted">(nothing scheduled)</p>'
    badge = ""
    if settings.show_today_indicator:
        badge = ' <span class="pill">today</span>'
    html = (
        "<!doctype html><html><head><meta charset=\"utf-8\"><title>TimeBlox</title></head><body>"
        f"<h1>{_escape(today)}{badge}</h1>{body}</body></html>"
    )
    return HTMLResponse(html)


@app.get("/raw/day/{date_key}")
def raw_day(date_key: str, username: str = Depends(get_current_user)) -> PlainTextResponse:
    """The day as copy-paste text."""
    _check_date(date_key)
    _, _, state = _load()
    return PlainTextResponse(schedule_to_text(state.schedule_for(date_key)))


# ── State & settings ──────────────────────────────────────────

@app.get("/api/state")
def api_get_state(username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Full state dump."""
    _, _, state = _load()
    return state.to_dict()


@app.get("/api/settings")
def api_get_settings(username: str = Depends(get_current_user)) -> dict[str, Any]:
    _, settings, _ = _load()
    return {
        "show_copy_indicators": settings.show_copy_indicators,
        "show_today_indicator": settings.show_today_indicator,
        "generator_configured": bool(settings.generator_command),
        "today": _today_str(),
    }


# ── Days & blocks ─────────────────────────────────────────────

@app.get("/api/days/{date_key}")
def api_get_day(date_key: str, username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    _, settings, state = _load()
    return _day_payload(state, settings, date_key)


@app.post("/api/days/{date_key}/blocks")
def api_create_block(date_key: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Add a block. Its color follows its category."""
    _check_date(date_key)
    errors = validate_block(payload)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    root, settings, state = _load()
    state = save_item(state, date_key, None, TimeBlock.from_dict(payload))
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.put("/api/days/{date_key}/blocks/{index}")
def api_update_block(date_key: str, index: int, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    errors = validate_block(payload)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    root, settings, state = _load()
    state = _run(save_item, state, date_key, index, TimeBlock.from_dict(payload))
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.delete("/api/days/{date_key}/blocks/{index}")
def api_delete_block(date_key: str, index: int, confirm: bool = False, username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    root, settings, state = _load()
    return _settle(root, settings, _run(request_delete_block, state, date_key, index), confirm, date_key)


@app.post("/api/days/{date_key}/blocks/{index}/move")
def api_move_block(date_key: str, index: int, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Drop a block at a new start. Landing on another block asks to break in."""
    _check_date(date_key)
    new_start = _minutes(payload, "startTime", "startMinutes")
    root, settings, state = _load()
    new_state, proposal = _run(request_drop, state, date_key, index, new_start)
    if proposal is None and new_state is state:
        return {"ok": False, "error": "Block overlaps more than one other block", "day": _day_payload(state, settings, date_key)}
    return _settle(root, settings, (new_state, proposal), bool(payload.get("confirm")), date_key)


@app.post("/api/days/{date_key}/blocks/{index}/resize")
def api_resize_block(date_key: str, index: int, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    handle = str(payload.get("handle", ""))
    edge = _minutes(payload, "time", "minutes")
    root, settings, state = _load()
    state = _run(resize_item, state, date_key, index, handle, edge)
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.post("/api/days/{date_key}/blocks/{index}/extend")
def api_extend_block(date_key: str, index: int, payload: dict[str, Any] = Body(default={}), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Lengthen a block (default one hour), pushing later blocks down."""
    _check_date(date_key)
    delta = _delta(payload, EXTEND_MINUTES)
    root, settings, state = _load()
    state = _run(change_duration, state, date_key, index, delta)
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.post("/api/days/{date_key}/blocks/{index}/shorten")
def api_shorten_block(date_key: str, index: int, payload: dict[str, Any] = Body(default={}), username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    delta = -abs(_delta(payload, SHORTEN_MINUTES))
    root, settings, state = _load()
    state = _run(change_duration, state, date_key, index, delta)
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.post("/api/days/{date_key}/new_block")
def api_new_block(date_key: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Offer (then add) a default block at the nearest quarter hour."""
    _check_date(date_key)
    at = _minutes(payload, "time", "minutes")
    root, settings, state = _load()
    return _settle(root, settings, request_new_block(state, date_key, at), bool(payload.get("confirm")), date_key)


@app.post("/api/days/{date_key}/generate")
def api_generate_day(
    date_key: str,
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    generator: ScheduleGenerator = Depends(get_generator),
) -> Any:
    """Replace the day with a schedule generated from free text."""
    _check_date(date_key)
    text = str(payload.get("tasks", ""))
    root, settings, state = _load()
    try:
        state = generate_day(state, generator, text, date_key)
    except GenerationError as e:
        return JSONResponse(status_code=502, content={"ok": False, "error": str(e)})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.get("/api/days/{date_key}/export")
def api_export_day(date_key: str, username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    _, _, state = _load()
    return {"date": date_key, "text": schedule_to_text(state.schedule_for(date_key))}


# ── Replication ───────────────────────────────────────────────

@app.post("/api/days/{date_key}/copy")
def api_copy_day(date_key: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Drop a day onto another. The source is promoted to a master when possible."""
    _check_date(date_key)
    target = str(payload.get("target", ""))
    _check_date(target)
    root, settings, state = _load()
    if not state.has_schedule(date_key):
        raise HTTPException(status_code=400, detail=f"Nothing to copy on {date_key}")
    state = begin_day_drag(state, date_key)
    return _settle(root, settings, request_copy_day(state, date_key, target), bool(payload.get("confirm")), target)


@app.post("/api/days/{date_key}/promote")
def api_promote_day(date_key: str, username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    root, settings, state = _load()
    state = begin_day_drag(state, date_key)
    save_state(state, root)
    return {"ok": True, "day": _day_payload(state, settings, date_key)}


@app.post("/api/days/{date_key}/clear")
def api_clear_day(date_key: str, payload: dict[str, Any] = Body(default={}), username: str = Depends(get_current_user)) -> dict[str, Any]:
    _check_date(date_key)
    root, settings, state = _load()
    return _settle(root, settings, request_clear_day(state, date_key), bool(payload.get("confirm")), date_key)


@app.post("/api/months/{month}/paste")
def api_paste_month(month: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Replicate *month* onto payload["target"] by weekday occurrence."""
    _check_month(month)
    target = str(payload.get("target", ""))
    _check_month(target)
    if target == month:
        raise HTTPException(status_code=400, detail="Cannot paste a month onto itself")
    root, settings, state = _load()
    return _settle(root, settings, request_paste_month(state, month, target), bool(payload.get("confirm")))


@app.get("/api/masters")
def api_list_masters(username: str = Depends(get_current_user)) -> dict[str, Any]:
    _, _, state = _load()
    return {"masters": [m.to_dict() for m in state.master_days]}


@app.delete("/api/masters/{slot_id}")
def api_delete_master(slot_id: int, confirm: bool = False, username: str = Depends(get_current_user)) -> dict[str, Any]:
    root, settings, state = _load()
    return _settle(root, settings, _run(request_delete_master, state, slot_id), confirm)


# ── Categories ────────────────────────────────────────────────

@app.get("/api/categories")
def api_list_categories(username: str = Depends(get_current_user)) -> dict[str, Any]:
    _, _, state = _load()
    return {"categories": [c.to_dict() for c in state.categories]}


@app.post("/api/categories")
def api_create_category(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    category = ActivityCategory.from_dict(payload)
    if not category.id or not category.name:
        raise HTTPException(status_code=400, detail="Category needs an id and a name")
    root, _, state = _load()
    state = _run(_add_category, state, category)
    save_state(state, root)
    return {"ok": True, "category": category.to_dict()}


@app.put("/api/categories/{category_id}")
def api_update_category(category_id: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    updates = {k: v for k, v in payload.items() if k in ("name", "color")}
    root, _, state = _load()
    state = _run(_update_category, state, category_id, updates)
    save_state(state, root)
    return {"ok": True, "categories": [c.to_dict() for c in state.categories]}


@app.delete("/api/categories/{category_id}")
def api_delete_category(category_id: str, username: str = Depends(get_current_user)) -> dict[str, Any]:
    root, _, state = _load()
    state = _run(_delete_category, state, category_id)
    save_state(state, root)
    return {"ok": True, "category_id": category_id}
