"""
Diff Parser
────────────
Parses the unified diff patch GitHub returns per changed file into
added lines with their new-side line numbers and diff positions.
The diff position is what GitHub's review API expects for inline comments.
"""

import re
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AddedLine:
    """A line introduced by the patch."""
    content: str
    line_number: int      # new-side absolute line number
    diff_position: int    # 1-based, counted from the line after the first hunk header


@dataclass
class DiffHunk:
    """A contiguous block of changes within a file."""
    old_start: int
    new_start: int
    header: str
    added_lines: list[AddedLine] = field(default_factory=list)


# ── Hunk header regex ─────────────────────────────────────────────────────
HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$"
)


def parse_patch(patch: str) -> list[DiffHunk]:
    """Parse a unified diff patch string into DiffHunk objects."""
    hunks: list[DiffHunk] = []
    current_hunk: Optional[DiffHunk] = None
    diff_position = 0
    new_line = 0

    for raw_line in patch.split("\n"):
        match = HUNK_HEADER_RE.match(raw_line)
        if match:
            # Later hunk headers count as a position; the first does not.
            if current_hunk is not None:
                diff_position += 1
            current_hunk = DiffHunk(
                old_start=int(match.group(1)),
                new_start=int(match.group(3)),
                header=raw_line,
            )
            hunks.append(current_hunk)
            new_line = current_hunk.new_start
            continue

        if current_hunk is None:
            continue

        diff_position += 1
        if raw_line.startswith("+"):
            current_hunk.added_lines.append(AddedLine(
                content=raw_line[1:],
                line_number=new_line,
                diff_position=diff_position,
            ))
            new_line += 1
        elif raw_line.startswith("-") or raw_line.startswith("\\"):
            continue
        else:
            new_line += 1

    return hunks


def added_lines(patch: str) -> list[AddedLine]:
    """All added lines of a patch, in diff order."""
    return [line for hunk in parse_patch(patch) for line in hunk.added_lines]
