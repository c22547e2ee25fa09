"""Parse `map[string]map[string]func(t *testing.T){...}` sequencing literals."""

from typing import List, NamedTuple
from . import patterns
from .lexer import find_block_end


class SequencingEntry(NamedTuple):
    group: str
    key: str
    referenced_name: str
    declared_index: int
    offset: int


class SequencingLiteral(NamedTuple):
    offset: int
    entries: List[SequencingEntry]
    malformed: bool


def find_sequencing_literals(text: str, masked: str) -> List[SequencingLiteral]:
    """
    Locate every two-level sequencing map literal in a file.

    Args:
        text: Original file text (group and key names are read from it)
        masked: Same text with literals and comments blanked

    Returns:
        Literals in source order; an unbalanced literal is returned with
        malformed=True and no entries
    """
    literals = []
    for match in patterns.SEQUENCING_MAP.finditer(masked):
        open_index = match.end() - 1
        close_index = find_block_end(text, open_index)
        if close_index == -1:
            literals.append(SequencingLiteral(match.start(), [], True))
            continue
        entries = _parse_groups(text, open_index + 1, close_index)
        literals.append(SequencingLiteral(match.start(), entries, False))
    return literals


def _parse_groups(text: str, start: int, end: int) -> List[SequencingEntry]:
    entries: List[SequencingEntry] = []
    pos = start
    while pos < end:
        outer = patterns.OUTER_ENTRY.search(text, pos, end)
        if outer is None:
            break
        group = outer.group(1)
        inner_open = outer.end() - 1
        inner_close = find_block_end(text, inner_open)
        if inner_close == -1 or inner_close > end:
            break

        # The closing brace stays in range so the last entry can end on it.
        declared_index = 0
        for inner in patterns.INNER_ENTRY.finditer(text, inner_open + 1, inner_close + 1):
            declared_index += 1
            entries.append(SequencingEntry(
                group=group,
                key=inner.group(1),
                referenced_name=inner.group(2),
                declared_index=declared_index,
                offset=inner.start(),
            ))
        pos = inner_close + 1
    return entries


def find_subtest_runs(text: str, masked: str, start: int, end: int) -> List[SequencingEntry]:
    """
    `t.Run("name", testFunc)` calls between start and end.

    Each becomes an entry whose group is the sub-test name and whose key is empty.
    """
    entries = []
    for match in patterns.SUBTEST_RUN.finditer(text, start, end):
        # Matches inside literals or comments are blank in the masked text.
        if masked[match.start()] != text[match.start()]:
            continue
        entries.append(SequencingEntry(
            group=match.group(1),
            key="",
            referenced_name=match.group(2),
            declared_index=len(entries) + 1,
            offset=match.start(),
        ))
    return entries
