"""Literal and comment aware scanning of Go source text.

Every helper here walks the text as a sequence of segments (code, comment,
string literal) so that delimiters inside literals or comments never disturb
brace or paren counting.
"""

import re
from bisect import bisect_right
from typing import Iterator, List, Tuple

CODE = "code"
COMMENT = "comment"
STRING = "string"

_OPENERS = re.compile(r'//|/\*|"|`|\'')
_NON_NEWLINE = re.compile(r"[^\n]")

_PAIRS = {"{": "}", "(": ")", "[": "]"}
_BRACKETS = {ch: re.compile(re.escape(ch) + "|" + re.escape(close)) for ch, close in _PAIRS.items()}
_EXPRESSION_STOPS = re.compile(r"[(\[{)\]},\n]")


def iter_segments(text: str, start: int = 0) -> Iterator[Tuple[int, int, str]]:
    """Yield (start, end, kind) spans covering text[start:]."""
    pos = start
    length = len(text)
    while pos < length:
        match = _OPENERS.search(text, pos)
        if match is None:
            yield (pos, length, CODE)
            return
        begin = match.start()
        if begin > pos:
            yield (pos, begin, CODE)

        token = match.group()
        if token == "//":
            end = text.find("\n", begin)
            end = length if end == -1 else end
            yield (begin, end, COMMENT)
        elif token == "/*":
            end = text.find("*/", begin + 2)
            end = length if end == -1 else end + 2
            yield (begin, end, COMMENT)
        elif token == "`":
            end = text.find("`", begin + 1)
            end = length if end == -1 else end + 1
            yield (begin, end, STRING)
        else:
            end = _end_of_quoted(text, begin, token)
            yield (begin, end, STRING)
        pos = end


def _end_of_quoted(text: str, begin: int, quote: str) -> int:
    # Interpreted strings and runes cannot span lines; an unterminated one stops at the newline.
    i = begin + 1
    length = len(text)
    while i < length:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n":
            return i
        i += 1
    return length


def find_closing(text: str, open_index: int) -> int:
    """
    Find the delimiter closing the one at open_index.

    Args:
        text: Source text
        open_index: Index of an opening '{', '(' or '['

    Returns:
        Index of the matching closing delimiter, or -1 when unbalanced
    """
    opener = text[open_index]
    if opener not in _PAIRS:
        raise ValueError(f"Not an opening delimiter at {open_index}: {opener!r}")
    pattern = _BRACKETS[opener]

    depth = 0
    for start, end, kind in iter_segments(text, open_index):
        if kind != CODE:
            continue
        for match in pattern.finditer(text, start, end):
            if match.group() == opener:
                depth += 1
            else:
                depth -= 1
                if depth == 0:
                    return match.start()
    return -1


def find_block_end(text: str, open_index: int) -> int:
    """Index of the '}' closing the block opened at open_index, or -1."""
    return find_closing(text, open_index)


def mask(text: str, strings: bool = True, comments: bool = True) -> str:
    """
    Blank literal contents and/or comments, keeping offsets and line breaks.

    String delimiters are kept so that masked text still shows where a
    literal sits.
    """
    parts: List[str] = []
    for start, end, kind in iter_segments(text):
        segment = text[start:end]
        if kind == STRING and strings:
            blanked = _NON_NEWLINE.sub(" ", segment)
            if len(segment) > 1 and segment[-1] == segment[0]:
                blanked = segment[0] + blanked[1:-1] + segment[-1]
            else:
                blanked = segment[0] + blanked[1:]
            parts.append(blanked)
        elif kind == COMMENT and comments:
            parts.append(_NON_NEWLINE.sub(" ", segment))
        else:
            parts.append(segment)
    return "".join(parts)


def expression_end(masked: str, start: int) -> int:
    """
    End of the expression starting at start in masked text.

    The expression stops at a top-level ',' or newline, or at a closing
    bracket that was not opened inside it.
    """
    depth = 0
    pos = start
    while True:
        match = _EXPRESSION_STOPS.search(masked, pos)
        if match is None:
            return len(masked)
        ch = match.group()
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                return match.start()
            depth -= 1
        elif depth == 0:
            return match.start()
        pos = match.end()


def normalize_whitespace(value: str) -> str:
    """Trim and collapse internal whitespace runs to one space."""
    return " ".join(value.split())


class LineIndex:
    """Maps character offsets to 1-based line numbers."""

    def __init__(self, text: str):
        self._starts = [0]
        for match in re.finditer("\n", text):
            self._starts.append(match.end())

    def line_of(self, offset: int) -> int:
        return bisect_right(self._starts, offset)

    @property
    def line_count(self) -> int:
        return len(self._starts)
