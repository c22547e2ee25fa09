"""Regular expressions for the stylized Go acceptance-test conventions.

All code patterns run against masked text (see lexer.mask) so that literal
contents and comments cannot produce matches.
"""

import re
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

IDENT = r"[A-Za-z_]\w*"

GO_KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
})

GO_BUILTIN_TYPES = frozenset({
    "any", "bool", "byte", "complex64", "complex128", "error", "float32", "float64",
    "int", "int8", "int16", "int32", "int64", "rune", "string", "uint", "uint8",
    "uint16", "uint32", "uint64", "uintptr", "nil", "true", "false",
})

INSTANTIATION_DENYLIST = GO_KEYWORDS | GO_BUILTIN_TYPES

STRUCT_DECL = re.compile(rf"^type\s+({IDENT})\s+struct\b", re.M)

# func [(recv [*]Type)] Name(  -- the match ends just after the parameter list's '('
FUNC_DECL = re.compile(
    rf"^func\s*(?:\(\s*(?:({IDENT})\s+)?\*?\s*({IDENT})\s*\)\s*)?({IDENT})\s*\(",
    re.M,
)

LOCAL_INSTANTIATION = re.compile(rf"(?<![\w.])({IDENT})\s*:=\s*&?({IDENT})\{{")
VAR_LITERAL = re.compile(rf"\bvar\s+({IDENT})\s*=\s*&?({IDENT})\{{")
VAR_DECL = re.compile(rf"\bvar\s+({IDENT})\s+\*?({IDENT})(?![\w.\[(])")
# v := newWidgetResource(...)  and  v, err := newWidgetResource(...)
CONSTRUCTOR_CALL = re.compile(rf"(?<![\w.])({IDENT})\s*(?:,\s*{IDENT}\s*)*:?=\s*({IDENT})\s*\(")

ASSIGNED_METHOD_CALL = re.compile(rf"(?<![\w.])({IDENT})\s*:?=\s*({IDENT})\s*\.\s*({IDENT})\s*\(")

CONFIG_FIELD = re.compile(r"(?<![\w.])Config\s*:\s*")
REQUIRES_IMPORT_STEP = re.compile(rf"\bRequiresImportErrorStep\(\s*({IDENT})\s*\.\s*({IDENT})\s*\)")

METHOD_CALL_EXPR = re.compile(rf"^({IDENT})\s*\.\s*({IDENT})\s*\(")
STRUCT_LITERAL_CALL_EXPR = re.compile(rf"^&?({IDENT})\{{[^{{}}]*\}}\s*\.\s*({IDENT})\s*\(")
IDENT_EXPR = re.compile(rf"^({IDENT})$")
FUNC_LITERAL_RETURN = re.compile(
    rf"^func\s*\([^)]*\)\s*string\s*\{{\s*return\s+({IDENT})\s*\.\s*({IDENT})\s*\(",
)

STRUCT_LITERAL_METHOD = re.compile(rf"(?<![\w.\]])&?({IDENT})\{{[^{{}}]*\}}\s*\.\s*({IDENT})\s*\(")
BARE_INSTANTIATION = re.compile(rf"(?<![\w.\]])({IDENT})\{{")

SEQUENCING_MAP = re.compile(
    rf"map\[string\]map\[string\]func\s*\(\s*{IDENT}\s+\*\s*testing\.T\s*\)\s*\{{"
)
SEQUENCING_MARKER = re.compile(r"map\[string\]map\[string\]func\s*\(|RunTestsInSequence")
SUBTEST_RUN = re.compile(rf"\bt\.Run\(\s*\"([^\"\n]*)\"\s*,\s*({IDENT})\s*\)")
OUTER_ENTRY = re.compile(r'"((?:[^"\\\n]|\\.)*)"\s*:\s*\{')
INNER_ENTRY = re.compile(rf'"((?:[^"\\\n]|\\.)*)"\s*:\s*({IDENT})\s*(?=,|\}}|\n)')

ENTITY_NAME = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)+$")

_TOKEN_PATTERNS: Dict[str, Pattern] = {}


def whole_token(name: str) -> Pattern:
    """Pattern matching name only when not part of a longer identifier."""
    pattern = _TOKEN_PATTERNS.get(name)
    if pattern is None:
        pattern = re.compile(rf"(?<![A-Za-z0-9_]){re.escape(name)}(?![A-Za-z0-9_])")
        _TOKEN_PATTERNS[name] = pattern
    return pattern


def any_token(names: Iterable[str]) -> Pattern:
    """Pattern matching any of names as a whole token (longest first)."""
    ordered = sorted(set(names), key=lambda n: (-len(n), n))
    alternation = "|".join(re.escape(n) for n in ordered)
    return re.compile(rf"(?<![A-Za-z0-9_])(?:{alternation})(?![A-Za-z0-9_])")


def receiver_call(variable: str) -> Pattern:
    """Pattern for `variable.method(` calls."""
    return re.compile(rf"(?<![\w.]){re.escape(variable)}\s*\.\s*({IDENT})\s*\(")


def entity_patterns(prefixes: List[str], block_keywords: List[str]) -> Tuple[Pattern, Pattern]:
    """
    Build the declaration-block and attribute-mention patterns.

    Returns:
        (block pattern, attribute pattern); the block pattern is anchored to
        a line start and captures (keyword, entity), the attribute pattern
        captures the entity.
    """
    entity = "(?:" + "|".join(re.escape(p) for p in prefixes) + r")[A-Za-z0-9_]+"
    keywords = "|".join(re.escape(k) for k in block_keywords)
    block = re.compile(rf'^\s*({keywords})\s+"({entity})"')
    attribute = re.compile(rf"(?<![\w.])(?:data\.)?({entity})\.[A-Za-z_]")
    return block, attribute


def constructor_result_type(result: str) -> Optional[str]:
    """
    Struct type a package-level function returns, from its result list.

    `*WidgetResource`, `(*WidgetResource, error)` and
    `(r *WidgetResource, err error)` all give WidgetResource. The first
    non-error result decides; anything but a plain named type gives None.
    """
    for part in result.strip().strip("()").split(","):
        words = part.split()
        if not words:
            continue
        type_name = words[-1].lstrip("*")
        if type_name == "error":
            continue
        if re.fullmatch(IDENT, type_name) and type_name not in INSTANTIATION_DENYLIST:
            return type_name
        return None
    return None


def local_bindings(masked_body: str, constructors: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Variables bound to a struct type inside a function body.

    Recognizes `v := Type{`, `v := &Type{`, `var v = Type{` and `var v Type`,
    plus `v := fn(` and `v, err := fn(` when constructors maps fn to the
    type it returns. The first binding of a variable wins.

    Returns:
        Mapping of variable name to type name
    """
    found: List[Tuple[int, str, str]] = []
    for pattern in (LOCAL_INSTANTIATION, VAR_LITERAL, VAR_DECL):
        for match in pattern.finditer(masked_body):
            variable, type_name = match.group(1), match.group(2)
            if type_name in INSTANTIATION_DENYLIST:
                continue
            found.append((match.start(), variable, type_name))

    if constructors:
        for match in CONSTRUCTOR_CALL.finditer(masked_body):
            type_name = constructors.get(match.group(2))
            if type_name is None:
                continue
            # `err` in `r, err := fn(` is not the constructed value
            if masked_body[:match.start()].rstrip().endswith(","):
                continue
            found.append((match.start(), match.group(1), type_name))

    bindings: Dict[str, str] = {}
    for _, variable, type_name in sorted(found):
        bindings.setdefault(variable, type_name)
    return bindings
