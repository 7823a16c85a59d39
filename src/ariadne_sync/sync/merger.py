"""Append-only merge of a contact's interaction log.

Remote contact pages carry the interaction log as a plain ``Notes`` text,
one interaction per line::

    [2026-02-10] email: Sent intro note
    [2026-02-14] call: 30 min chat about the platform team

Key design choices:

* Only lines matching ``[YYYY-MM-DD] type: summary`` are parsed.  Rendering
  drops whole trailing lines to fit the remote length limit, never part of
  one, and writes summaries on a single line with single spaces.
* Merging is a union keyed on ``(date, type, summary)``, comparing
  summaries in that rendered form.  Local entries are never removed or
  rewritten, and the merged log is ordered by date (stable, so same-day
  entries keep their relative order).
"""

from __future__ import annotations

import logging
import re

from ariadne_sync.sync.models import Interaction, InteractionType

logger = logging.getLogger(__name__)

NOTES_LIMIT = 2000

_LINE_PATTERN = re.compile(r"^\[(\d{4}-\d{2}-\d{2})\]\s+(\w+):\s+(.+)$")
_KNOWN_TYPES = {t.value for t in InteractionType}


def parse_interactions(text: str | None) -> list[Interaction]:
    """Parse interaction lines out of a notes text.

    Lines that do not match the grammar, or whose type is not a known
    interaction type, are ignored.
    """
    if not text:
        return []
    parsed: list[Interaction] = []
    for line in text.split("\n"):
        match = _LINE_PATTERN.match(line.strip())
        if match is None:
            continue
        date, kind, summary = match.groups()
        if kind not in _KNOWN_TYPES:
            logger.debug("Ignoring interaction of unknown type %r", kind)
            continue
        parsed.append(
            Interaction(date=date, type=InteractionType(kind), summary=summary)
        )
    return parsed


def render_notes(interactions: list[Interaction]) -> str:
    """Render interactions as notes text within the remote limit.

    Only whole lines are kept, so every rendered line parses back to the
    interaction it came from.
    """
    lines: list[str] = []
    size = 0
    for i in interactions:
        line = f"[{i.date}] {i.type.value}: {i.note_summary}"
        size += len(line) + (1 if lines else 0)
        if size > NOTES_LIMIT:
            logger.debug(
                "Notes truncated to %d of %d interactions",
                len(lines),
                len(interactions),
            )
            break
        lines.append(line)
    return "\n".join(lines)


def merge_interactions(
    existing: list[Interaction], notes_text: str | None
) -> list[Interaction]:
    """Union the interactions found in *notes_text* into *existing*.

    Returns:
        A new list sorted by date.  *existing* is returned unchanged (same
        object) when the notes contain no parseable interaction.
    """
    parsed = parse_interactions(notes_text)
    if not parsed:
        return existing

    seen = {i.merge_key for i in existing}
    merged = list(existing)
    for interaction in parsed:
        if interaction.merge_key not in seen:
            merged.append(interaction)
            seen.add(interaction.merge_key)

    merged.sort(key=lambda i: i.date)
    return merged
