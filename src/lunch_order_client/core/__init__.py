from .countdown import countdown, format_countdown
from .merge import MergedPicks, merge_selections, restrict_to_members
from .aggregate import summarize_by_dish
from .members import ensure_member_details, member_list, placeholder_name, resolve_display_name
from .selection import LocalSelection
from .view import GroupView, build_group_view

__all__ = [
    "countdown", "format_countdown",
    "MergedPicks", "merge_selections", "restrict_to_members",
    "summarize_by_dish",
    "ensure_member_details", "member_list", "placeholder_name", "resolve_display_name",
    "LocalSelection",
    "GroupView", "build_group_view",
]
