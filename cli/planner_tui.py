#!/usr/bin/env python3
"""TimeBlox TUI: keyboard-driven day planner powered by Textual."""

from __future__ import annotations

import logging
import os
import sys
from datetime import date, timedelta
from typing import Any, Callable

from textual import events, on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static

from timeblox import (
    EXTEND_MINUTES,
    SHORTEN_MINUTES,
    GenerationError,
    GestureTracker,
    LongPressTimer,
    PlannerState,
    Preview,
    Proposal,
    TimeBlock,
    WorkspaceFileError,
    begin_day_drag,
    change_duration,
    confirm,
    copy_indicator,
    format_time,
    generate_day,
    load_settings,
    load_state,
    make_generator,
    month_key,
    new_block_template,
    request_clear_day,
    request_copy_day,
    request_delete_block,
    request_drop,
    request_paste_month,
    save_item,
    save_state,
    schedule_to_text,
    ultimate_source,
    validate_block,
    with_schedule,
    workspace_root,
)
from timeblox.clock import DRAG_SNAP_MINUTES
from timeblox.interaction import TimerHandle

CSS = """
Screen {
    background: $surface;
}

#day-info {
    height: auto;
    padding: 0 2;
    color: $text-muted;
}

#blocks-table {
    height: 1fr;
}

#status-bar {
    dock: bottom;
    height: 1;
    background: $primary-background;
    color: $text-muted;
    padding: 0 2;
}

.modal-body {
    width: 64;
    height: auto;
    padding: 1 2;
    border: thick $primary;
    background: $panel;
}

.modal-title {
    text-style: bold;
    margin: 0 0 1 0;
}

.modal-buttons {
    height: auto;
    margin: 1 0 0 0;
}

.modal-buttons Button {
    margin: 0 1 0 0;
}

ConfirmScreen, PromptScreen, BlockEditScreen {
    align: center middle;
}
"""


# ── Modals ─────────────────────────────────────────────────────


class ConfirmScreen(ModalScreen[bool]):
    """Shows a proposal's message; dismisses with True on confirm."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, proposal: Proposal) -> None:
        super().__init__()
        self.proposal = proposal

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(self.proposal.title, classes="modal-title"),
            Static(self.proposal.message),
            Horizontal(
                Button(self.proposal.confirm_text, variant="error", id="yes"),
                Button("Cancel", id="no"),
                classes="modal-buttons",
            ),
            classes="modal-body",
        )

    @on(Button.Pressed, "#yes")
    def _yes(self) -> None:
        self.dismiss(True)

    @on(Button.Pressed, "#no")
    def _no(self) -> None:
        self.dismiss(False)

    def action_cancel(self) -> None:
        self.dismiss(False)


class PromptScreen(ModalScreen[str]):
    """Single-line text prompt; dismisses with "" on escape."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, title: str, placeholder: str = "", value: str = "") -> None:
        super().__init__()
        self.prompt_title = title
        self.placeholder = placeholder
        self.value = value

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(self.prompt_title, classes="modal-title"),
            Input(value=self.value, placeholder=self.placeholder, id="prompt-input"),
            classes="modal-body",
        )

    @on(Input.Submitted, "#prompt-input")
    def _submit(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip())

    def action_cancel(self) -> None:
        self.dismiss("")


class BlockEditScreen(ModalScreen[dict]):
    """Edit form for one block. Dismisses with the block dict, or {} on cancel."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    FIELDS = (
        ("startTime", "Start (e.g. 9:00 AM)"),
        ("endTime", "End (e.g. 10:00 AM)"),
        ("title", "Title"),
        ("category", "Category"),
        ("notes", "Notes"),
    )

    def __init__(self, item: TimeBlock, heading: str) -> None:
        super().__init__()
        self.item = item
        self.heading = heading

    def compose(self) -> ComposeResult:
        values = self.item.to_dict()
        yield Vertical(
            Label(self.heading, classes="modal-title"),
            *[Input(value=str(values.get(key, "")), placeholder=label, id=f"edit-{key}") for key, label in self.FIELDS],
            Static(id="edit-errors"),
            Horizontal(
                Button("Save", variant="primary", id="save"),
                Button("Cancel", id="cancel"),
                classes="modal-buttons",
            ),
            classes="modal-body",
        )

    def _collect(self) -> dict[str, Any]:
        out: dict[str, Any] = {"color": self.item.color}
        for key, _ in self.FIELDS:
            out[key] = self.query_one(f"#edit-{key}", Input).value.strip()
        return out

    @on(Button.Pressed, "#save")
    @on(Input.Submitted)
    def _save(self) -> None:
        data = self._collect()
        errors = validate_block(data)
        if errors:
            self.query_one("#edit-errors", Static).update("\n".join(errors))
            return
        self.dismiss(data)

    @on(Button.Pressed, "#cancel")
    def _cancel(self) -> None:
        self.dismiss({})

    def action_cancel(self) -> None:
        self.dismiss({})


# ── Timers ─────────────────────────────────────────────────────


class _TextualTimer:
    """Adapts a Textual Timer to the cancel() handle LongPressTimer expects."""

    def __init__(self, timer: Any) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


# ── Main app ───────────────────────────────────────────────────


class TimeBloxApp(App):
    """TimeBlox: one day of time-blocks at a time."""

    TITLE = "TimeBlox"
    CSS = CSS

    BINDINGS = [
        Binding("h", "prev_day", "Prev day"),
        Binding("l", "next_day", "Next day"),
        Binding("t", "go_today", "Today"),
        Binding("a", "add_block", "Add"),
        Binding("m", "start_move", "Move"),
        Binding("r", "start_resize('bottom')", "Resize end"),
        Binding("R", "start_resize('top')", "Resize start"),
        Binding("j", "nudge(1)", "Later", show=False),
        Binding("k", "nudge(-1)", "Earlier", show=False),
        Binding("e", "extend", "Extend"),
        Binding("s", "shorten", "Shorten"),
        Binding("d", "delete_block", "Delete"),
        Binding("c", "copy_day", "Copy day"),
        Binding("p", "paste_month", "Paste month"),
        Binding("x", "clear_day", "Clear day"),
        Binding("g", "generate", "Generate"),
        Binding("y", "export", "Copy text"),
        Binding("escape", "cancel_gesture", "Cancel", show=False),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self.root_path = workspace_root()
        self.settings = load_settings(self.root_path)
        self.state: PlannerState = load_state(self.root_path, self.settings)
        self.current = date.today()
        self.tracker = GestureTracker(on_tick=self._on_tick)
        self.long_press = LongPressTimer(timer_factory=self._timer_factory)
        self._pointer = 0

    def _timer_factory(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _TextualTimer(self.set_timer(delay, callback))

    @property
    def date_key(self) -> str:
        return self.current.isoformat()

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="day-info")
        yield DataTable(id="blocks-table", cursor_type="row")
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#blocks-table", DataTable)
        table.add_columns("Start", "End", "Title", "Category", "Notes")
        self._render_day()

    # ── Rendering ──────────────────────────────────────────────

    def _selected(self) -> int | None:
        schedule = self.state.schedule_for(self.date_key)
        if not schedule:
            return None
        row = self.query_one("#blocks-table", DataTable).cursor_row
        return min(max(row, 0), len(schedule) - 1)

    def _render_day(self, preview: Preview | None = None, select: int | None = None) -> None:
        table = self.query_one("#blocks-table", DataTable)
        keep = table.cursor_row if select is None else select
        table.clear()
        for i, b in enumerate(self.state.schedule_for(self.date_key)):
            start, end, title = b.start_time, b.end_time, b.title
            if preview is not None and i == preview.index:
                start, end = format_time(preview.start), format_time(preview.end)
                title = f"» {title}"
            elif preview is not None and preview.squish is not None and i == preview.squish.index:
                end = format_time(preview.squish.end)
            elif preview is not None and i == preview.collision:
                title = f"⚠ {title}"
            table.add_row(start, end, title, b.category, b.notes)
        if table.row_count:
            table.move_cursor(row=min(max(keep, 0), table.row_count - 1))

        label = self.current.strftime("%A, %B %d %Y")
        if self.settings.show_today_indicator and self.current == date.today():
            label += "  (today)"
        self.sub_title = label
        self.query_one("#day-info", Static).update(self._day_info())

    def _day_info(self) -> str:
        key = self.date_key
        parts = []
        if self.settings.show_copy_indicators:
            indicator = copy_indicator(self.state, key)
            if indicator == "master":
                parts.append("Master template")
            elif indicator is not None:
                source = ultimate_source(self.state.copy_links, key)
                parts.append(f"Copy of {source} [{indicator}]")
        month_source = self.state.month_copy_links.get(month_key(self.current))
        if month_source:
            parts.append(f"Month pasted from {month_source}")
        return "  ·  ".join(parts)

    def _status(self, text: str) -> None:
        self.query_one("#status-bar", Static).update(text)

    def _commit(self, state: PlannerState, select: int | None = None) -> None:
        self.state = state
        save_state(state, self.root_path)
        self._render_day(select=select)

    def _ask(self, state: PlannerState, proposal: Proposal | None) -> None:
        """Commit directly, or after the user confirms the proposal."""
        if proposal is None:
            self._commit(state)
            return

        def done(ok: bool | None) -> None:
            if ok:
                self._commit(confirm(state, proposal))
            else:
                self._status("Cancelled")

        self.push_screen(ConfirmScreen(proposal), done)

    # ── Navigation ─────────────────────────────────────────────

    def _go(self, day: date) -> None:
        self.action_cancel_gesture()
        self.current = day
        self._render_day(select=0)

    def action_prev_day(self) -> None:
        self._go(self.current - timedelta(days=1))

    def action_next_day(self) -> None:
        self._go(self.current + timedelta(days=1))

    def action_go_today(self) -> None:
        self._go(date.today())

    # ── Block editing ──────────────────────────────────────────

    def action_add_block(self) -> None:
        schedule = self.state.schedule_for(self.date_key)
        index = self._selected()
        start = schedule[index].end_minutes if index is not None else 9 * 60
        item = new_block_template(start, self.state.categories)

        def done(data: dict | None) -> None:
            if data:
                self._commit(save_item(self.state, self.date_key, None, TimeBlock.from_dict(data)))

        self.push_screen(BlockEditScreen(item, "Add A Time Blox"), done)

    @on(DataTable.RowSelected)
    def _on_row_selected(self) -> None:
        self.action_edit_or_release()

    def action_edit_or_release(self) -> None:
        if self.tracker.active:
            self._release()
            return
        index = self._selected()
        if index is None:
            return
        item = self.state.schedule_for(self.date_key)[index]

        def done(data: dict | None) -> None:
            if data:
                self._commit(save_item(self.state, self.date_key, index, TimeBlock.from_dict(data)))

        self.push_screen(BlockEditScreen(item, "Edit Time Blox"), done)

    def action_delete_block(self) -> None:
        index = self._selected()
        if index is None:
            return
        self._ask(*request_delete_block(self.state, self.date_key, index))

    def action_extend(self) -> None:
        index = self._selected()
        if index is not None:
            self._commit(change_duration(self.state, self.date_key, index, EXTEND_MINUTES), select=index)

    def action_shorten(self) -> None:
        index = self._selected()
        if index is not None:
            self._commit(change_duration(self.state, self.date_key, index, SHORTEN_MINUTES), select=index)

    # ── Gestures (keyboard drag / resize) ──────────────────────

    def _on_tick(self, minutes: int) -> None:
        self._status(f"→ {format_time(minutes)}")

    def action_start_move(self) -> None:
        index = self._selected()
        if index is None:
            return
        item = self.state.schedule_for(self.date_key)[index]
        self._pointer = item.start_minutes
        if self.tracker.begin_drag(self.state.schedule_for(self.date_key), index, self._pointer, 0):
            self._status("Moving: j/k to shift, enter to drop, escape to cancel")

    def action_start_resize(self, handle: str) -> None:
        index = self._selected()
        if index is None:
            return
        item = self.state.schedule_for(self.date_key)[index]
        self._pointer = item.start_minutes if handle == "top" else item.end_minutes
        if self.tracker.begin_resize(self.state.schedule_for(self.date_key), index, handle, self._pointer):
            self._status(f"Resizing {handle}: j/k to shift, enter to apply, escape to cancel")

    def action_nudge(self, steps: int) -> None:
        if not self.tracker.active:
            table = self.query_one("#blocks-table", DataTable)
            table.move_cursor(row=table.cursor_row + steps)
            return
        self._pointer += steps * DRAG_SNAP_MINUTES
        self._render_day(preview=self.tracker.update(self._pointer))

    def _release(self) -> None:
        preview = self.tracker.preview
        outcome = self.tracker.release()
        if outcome is None:
            return
        if outcome.break_in is not None:
            b = outcome.break_in
            self._ask(*request_drop(self.state, self.date_key, b.dropped_index, b.new_start))
        elif outcome.rejected:
            self._status("Can't drop there: it overlaps more than one block")
            self._render_day()
        elif outcome.changed:
            self._commit(with_schedule(self.state, self.date_key, outcome.schedule))
            if preview is not None:
                self._status(f"{format_time(preview.start)} - {format_time(preview.end)}")

    def action_cancel_gesture(self) -> None:
        self.long_press.cancel()
        if self.tracker.cancel() is not None:
            self._status("Cancelled")
            self._render_day()

    # ── Long press: hold the mouse on a block to shorten it ────

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if self.tracker.active or self._selected() is None:
            return
        self.long_press.press(self.action_shorten)

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self.long_press.cancel()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self.long_press.pending:
            self.long_press.cancel()

    # ── Replication ────────────────────────────────────────────

    def action_copy_day(self) -> None:
        key = self.date_key
        if not self.state.has_schedule(key):
            self._status("Nothing to copy")
            return
        self.state = begin_day_drag(self.state, key)

        def done(target: str | None) -> None:
            if not target:
                return
            try:
                date.fromisoformat(target)
            except ValueError:
                self.notify(f"Invalid date: {target}", severity="warning")
                return
            self._ask(*request_copy_day(self.state, key, target))

        self.push_screen(PromptScreen(f"Copy {key} to", "YYYY-MM-DD"), done)

    def action_paste_month(self) -> None:
        source = month_key(self.current)

        def done(target: str | None) -> None:
            if not target:
                return
            try:
                self._ask(*request_paste_month(self.state, source, target))
            except ValueError:
                self.notify(f"Invalid month: {target}", severity="warning")

        self.push_screen(PromptScreen(f"Paste {source} onto month", "YYYY-MM"), done)

    def action_clear_day(self) -> None:
        self._ask(*request_clear_day(self.state, self.date_key))

    # ── Generation & export ────────────────────────────────────

    def action_generate(self) -> None:
        if not self.settings.generator_command:
            self.notify("Set generator_command in settings.yaml first", severity="warning")
            return

        def done(text: str | None) -> None:
            if not text:
                return
            generator = make_generator(self.settings, self.root_path)
            try:
                state = generate_day(self.state, generator, text, self.date_key)
            except GenerationError as e:
                self.notify(str(e), title="Generation failed", severity="error")
                return
            self._commit(state, select=0)

        self.push_screen(
            PromptScreen("Describe your day", "tasks, durations, preferred times…", self.settings.default_tasks),
            done,
        )

    def action_export(self) -> None:
        text = schedule_to_text(self.state.schedule_for(self.date_key))
        if not text:
            self._status("Nothing to copy")
            return
        self.copy_to_clipboard(text)
        self.notify("Schedule copied to clipboard")

    def action_quit_app(self) -> None:
        self.long_press.cancel()
        self.exit()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    if not root.exists():
        print(f"Workspace not found: {root}")
        print("Set TIMEBLOX_ROOT or create the directory first.")
        sys.exit(1)

    logging.basicConfig(
        filename=str(root / "timeblox.log"),
        level=os.environ.get("TIMEBLOX_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        app = TimeBloxApp()
    except WorkspaceFileError as exc:
        print(f"Cannot load workspace: {exc}")
        sys.exit(1)
    app.run()


if __name__ == "__main__":
    main()
