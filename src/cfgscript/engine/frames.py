"""Script-frame inspection shared by the engine and the builtins.

Config code and host code run on the same interpreter stack. A frame
belongs to a config script when its globals carry SCRIPT_MARKER, which the
engine plants in every module namespace it creates. Positions and
backtraces shown to config authors only ever list those frames.
"""

from __future__ import annotations

import traceback
from collections.abc import Iterable
from types import FrameType, TracebackType

SCRIPT_MARKER = "__cfgscript_module__"


def is_script_frame(frame: FrameType) -> bool:
    return SCRIPT_MARKER in frame.f_globals


def script_stack(frame: FrameType | None) -> list[traceback.FrameSummary]:
    """Script frames from the outermost caller down to ``frame``."""
    summaries = traceback.StackSummary.extract(
        (f, lineno) for f, lineno in traceback.walk_stack(frame) if is_script_frame(f)
    )
    frames = list(summaries)
    frames.reverse()
    return frames


def script_traceback(tb: TracebackType | None) -> list[traceback.FrameSummary]:
    """Script frames of a traceback, outermost first, with column info."""
    return [
        summary
        for (frame, _), summary in zip(traceback.walk_tb(tb), traceback.extract_tb(tb))
        if is_script_frame(frame)
    ]


def format_position(summary: traceback.FrameSummary | None) -> str:
    if summary is None:
        return ""
    colno = getattr(summary, "colno", None)
    if colno is None:
        return f"{summary.filename}:{summary.lineno}"
    return f"{summary.filename}:{summary.lineno}:{colno + 1}"


def format_backtrace(frames: Iterable[traceback.FrameSummary]) -> str:
    lines = ["Traceback (most recent call last):"]
    for summary in frames:
        lines.append(f"  {format_position(summary)}: in {summary.name}")
        if summary.line:
            lines.append(f"    {summary.line.strip()}")
    return "\n".join(lines)


__all__ = [
    "SCRIPT_MARKER",
    "is_script_frame",
    "script_stack",
    "script_traceback",
    "format_position",
    "format_backtrace",
]
