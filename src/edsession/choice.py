"""Choice resolution.

Maps a typed answer (index or name) to one or more session indices. Name
matching falls back through exact, case-insensitive, then prefix matches; an
ambiguous name narrows the displayed set, and an empty answer inside a narrowed
set goes back up one level instead of cancelling.
"""

import re
from collections.abc import Callable, Sequence

from . import config
from .models import SessionSummary
from .prompt import Prompt
from .telemetry import get_logger

logger = get_logger(__name__)

_INDEX_RE = re.compile(r"^\[?\s*-?\d+(?:[\s,;]+-?\d+)*\s*\]?$")


def parse_indices(answer: str) -> list[int] | None:
    """Parse "2", "1 3", "1,3" or "[1 3]" into integers; None if not numeric."""
    if not _INDEX_RE.match(answer):
        return None
    return [int(token) for token in re.findall(r"-?\d+", answer)]


def _match_stages(answer: str) -> list[Callable[[str], bool]]:
    folded = answer.casefold()
    return [
        lambda name: name == answer,
        lambda name: name.casefold() == folded,
        lambda name: name.startswith(answer),
        lambda name: name.casefold().startswith(folded),
    ]


def match_names(answer: str, summaries: Sequence[SessionSummary]) -> list[SessionSummary]:
    """Return the first non-empty match set, in fallback order.

    A single case-sensitive prefix hit only counts when the case-insensitive
    prefix set is that same single hit.
    """
    exact, exact_folded, prefix, prefix_folded = _match_stages(answer)
    for stage in (exact, exact_folded):
        found = [s for s in summaries if stage(s.name)]
        if found:
            return found

    found = [s for s in summaries if prefix(s.name)]
    wider = [s for s in summaries if prefix_folded(s.name)]
    if len(found) == 1 and len(wider) > 1:
        return wider
    return found or wider


def resolve_choice(
    summaries: Sequence[SessionSummary],
    prompt: Prompt,
    name: str | None = None,
    allow_multiple: bool = False,
) -> list[int]:
    """Resolve a session selection to 1-based store indices.

    Args:
        summaries: the store listing
        prompt: where to display tables and read answers
        name: optional name; an exact match resolves without prompting
        allow_multiple: accept several indices in one answer

    Returns:
        Selected indices; empty list when the user cancels.
    """
    if name is not None:
        exact = [s.index for s in summaries if s.name == name]
        if len(exact) == 1 or (exact and allow_multiple):
            return exact
        if exact:
            # identical names: narrow to them straight away
            return _choose(summaries, prompt, allow_multiple, start=[s for s in summaries if s.name == name])

    return _choose(summaries, prompt, allow_multiple)


def _choose(
    summaries: Sequence[SessionSummary],
    prompt: Prompt,
    allow_multiple: bool,
    start: Sequence[SessionSummary] | None = None,
) -> list[int]:
    # navigation stack of candidate sets; the bottom entry is the full listing
    stack: list[Sequence[SessionSummary]] = [summaries]
    if start is not None:
        stack.append(start)

    while True:
        current = stack[-1]
        nested = len(stack) > 1
        prompt.display_sessions(current)
        answer = prompt.request_input(config.INPUT_PROMPT).strip()

        if not answer:
            if nested:
                stack.pop()
                continue
            logger.debug("[Choice] Cancelled")
            return []

        indices = parse_indices(answer)
        if indices is not None:
            allowed = {s.index for s in current}
            bad = next((i for i in indices if i not in allowed), None)
            if bad is not None:
                hint = " or press enter to go up a level" if nested else ""
                prompt.display_text(f"{bad} is not one of the included indices. Please try again{hint}.")
                continue
            selected = indices
        else:
            matched = match_names(answer, current)
            if not matched:
                prompt.display_text("Can not find an option name that matches, please try again.")
                continue
            if len(matched) > 1:
                prompt.display_text("More than one name matched (use an index if names are identical):")
                stack.append(matched)
                continue
            selected = [matched[0].index]

        if len(selected) > 1 and not allow_multiple:
            prompt.display_text("Please only choose one option.")
            continue

        logger.debug(f"[Choice] Selected {selected}")
        return selected
