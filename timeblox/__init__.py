"""TimeBlox core library: time-block model, mutation engine and calendar replication.

Public API re-exports for convenient imports:
    from timeblox import PlannerState, load_state, copy_day, ...
"""

# Clock
from timeblox.clock import (
    MINUTES_PER_DAY,
    parse_time,
    format_time,
    is_valid_time,
    snap,
    date_key,
    month_key,
    parse_date_key,
    parse_month_key,
)

# Models
from timeblox.models import (
    TimeBlock,
    ActivityCategory,
    MasterDay,
    Settings,
    default_categories,
    find_category,
)

# Block store
from timeblox.blocks import (
    Schedule,
    BreakIn,
    MoveResult,
    sort_blocks,
    validate_block,
    validate_schedule,
    insert_block,
    edit_block,
    delete_block,
    find_collision,
    move_block,
    break_in_split,
    resize_block,
    shift_duration,
    new_block_template,
    EXTEND_MINUTES,
    SHORTEN_MINUTES,
)

# Interaction
from timeblox.interaction import (
    GestureState,
    GestureTracker,
    GestureOutcome,
    Preview,
    LongPressTimer,
)

# Planner state
from timeblox.planner import (
    PlannerState,
    with_schedule,
    insert_item,
    save_item,
    delete_item,
    drop_item,
    confirm_break_in,
    resize_item,
    change_duration,
    apply_generated,
    add_category,
    update_category,
    delete_category,
)

# Masters & replication
from timeblox.masters import default_master_days, find_master, first_free_slot
from timeblox.replication import (
    ultimate_source,
    copy_indicator,
    promote_to_master,
    begin_day_drag,
    needs_override_confirmation,
    copy_day,
    clear_day_and_links,
    delete_master,
    paste_month,
)

# Confirmations
from timeblox.proposals import (
    Proposal,
    confirm,
    request_drop,
    request_copy_day,
    request_paste_month,
    request_clear_day,
    request_delete_master,
    request_delete_block,
    request_new_block,
)

# Generation & export
from timeblox.generation import (
    GenerationError,
    ScheduleGenerator,
    CommandGenerator,
    build_prompt,
    parse_generated,
    generate_day,
)
from timeblox.export import schedule_to_text

# Workspace & file I/O
from timeblox.workspace import (
    workspace_root,
    today_str,
    settings_path,
    state_path,
    load_settings,
    save_settings,
    load_state,
    save_state,
    make_generator,
)
from timeblox.fileio import WorkspaceFileError, load_mapping, save_mapping
