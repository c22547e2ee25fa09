"""Lexical extraction of structural facts from Go acceptance-test sources."""

import re
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple
from . import patterns
from .lexer import LineIndex, expression_end, find_block_end, find_closing, mask, normalize_whitespace
from .models import (
    CallEdgeFact,
    DirectReferenceFact,
    FileFacts,
    HelperFact,
    SequentialMappingFact,
    StructFact,
    TemplateCallFact,
    TestFunctionFact,
)
from .sequential_literals import find_sequencing_literals, find_subtest_runs
from ..store.models import HelperCallKind, ReferenceKind
from ..utils.errors import ExtractionError
from ..utils.logging import get_logger

logger = get_logger("extraction.extractor")

_BODY_OPEN = re.compile(r"\b(?:interface|struct)\s*\{|\{")


class _FunctionDecl(NamedTuple):
    name: str
    receiver_var: Optional[str]
    receiver_type: Optional[str]
    line: int
    body_open: int
    body_close: int
    result: str


class LexicalExtractor:
    """Extracts structs, tests, helpers, template calls and sequencing maps from one file."""

    def __init__(self, config: Dict[str, Any]):
        extractor = config.get("extractor", {})
        self._test_prefixes = tuple(extractor.get("test_function_prefixes", ["Test", "testAcc"]))
        self._receiver_suffixes = tuple(extractor.get("helper_receiver_suffixes", ["Resource"]))
        self._result_types = set(extractor.get("helper_result_types", ["string"]))
        self._excluded_names = set(extractor.get("excluded_names", []))
        self._excluded_prefixes = tuple(extractor.get("excluded_prefixes", []))
        self._excluded_suffixes = tuple(extractor.get("excluded_suffixes", []))
        self._block_pattern, self._attribute_pattern = patterns.entity_patterns(
            extractor.get("entity_prefixes", ["azurerm_"]),
            extractor.get("block_keywords", ["resource", "data"]),
        )
        self._track_subtests = config.get("sequential", {}).get("track_subtest_runs", True)

    def extract(self, path: str, text: str) -> FileFacts:
        """
        Extract structural facts from one file.

        Malformed constructs (unbalanced bodies or literals) are skipped and
        counted in FileFacts.skipped_constructs rather than failing the file.

        Args:
            path: Path relative to the corpus root
            text: Whole-file source text

        Returns:
            FileFacts for the file

        Raises:
            ExtractionError: If the file as a whole cannot be processed
        """
        try:
            return self._extract(path, text)
        except (ValueError, IndexError) as e:
            raise ExtractionError(f"Failed to extract {path}: {e}") from e

    def _extract(self, path: str, text: str) -> FileFacts:
        masked = mask(text)
        uncommented = mask(text, strings=False)
        index = LineIndex(text)
        facts = FileFacts(path=path)

        facts.structs = [
            StructFact(name=m.group(1), line=index.line_of(m.start()))
            for m in patterns.STRUCT_DECL.finditer(masked)
        ]

        test_spans: List[Tuple[int, int, str]] = []
        seen_tests = set()

        # Constructors are collected first; callers may precede them in the file.
        decls = []
        for decl, skipped in self._iter_function_decls(text, masked, index):
            if skipped:
                facts.skipped_constructs += 1
                continue
            decls.append(decl)
            if decl.receiver_type is None and not self.is_test_function(decl.name):
                type_name = patterns.constructor_result_type(decl.result)
                if type_name is not None:
                    facts.constructor_types[decl.name] = type_name

        for decl in decls:
            if self.is_test_function(decl.name):
                if decl.name in seen_tests:
                    logger.warning(f"Duplicate test function {decl.name} in {path}; keeping the first")
                    facts.skipped_constructs += 1
                    continue
                seen_tests.add(decl.name)
                test_spans.append((decl.body_open, decl.body_close, decl.name))
                facts.test_functions.append(self._build_test_function(decl, text, masked, index))
            elif self.is_helper_method(decl.name, decl.receiver_type, decl.result):
                facts.helpers.append(self._build_helper(decl, text, masked, uncommented, index, facts.constructor_types))

        facts.sequential_mappings, facts.skipped_sequencing_literals = self._extract_sequential(
            text, masked, index, test_spans
        )

        logger.debug(
            f"Extracted {path}: {len(facts.structs)} structs, {len(facts.test_functions)} tests, "
            f"{len(facts.helpers)} helpers, {len(facts.sequential_mappings)} sequential mappings"
        )
        return facts

    def is_test_function(self, name: str) -> bool:
        return name.startswith(self._test_prefixes)

    def is_helper_method(self, name: str, receiver_type: Optional[str], result: str) -> bool:
        """Receiver method on a *Resource type returning text, minus validators and lifecycle hooks."""
        if not receiver_type or not receiver_type.endswith(self._receiver_suffixes):
            return False
        result_parts = {part.strip().lstrip("*") for part in result.strip("()").split(",")}
        if not result_parts & self._result_types:
            return False
        if name in self._excluded_names:
            return False
        if self._excluded_prefixes and name.startswith(self._excluded_prefixes):
            return False
        if self._excluded_suffixes and name.endswith(self._excluded_suffixes):
            return False
        return True

    def _iter_function_decls(
        self, text: str, masked: str, index: LineIndex
    ) -> Iterator[Tuple[Optional[_FunctionDecl], bool]]:
        for match in patterns.FUNC_DECL.finditer(masked):
            params_close = find_closing(masked, match.end() - 1)
            if params_close == -1:
                yield None, True
                continue
            body_open = self._find_body_open(masked, params_close + 1)
            if body_open == -1:
                continue
            body_close = find_block_end(text, body_open)
            if body_close == -1:
                logger.debug(f"Unbalanced body for {match.group(3)} at line {index.line_of(match.start())}")
                yield None, True
                continue
            yield _FunctionDecl(
                name=match.group(3),
                receiver_var=match.group(1),
                receiver_type=match.group(2),
                line=index.line_of(match.start()),
                body_open=body_open,
                body_close=body_close,
                result=masked[params_close + 1:body_open].strip(),
            ), False

    @staticmethod
    def _find_body_open(masked: str, pos: int) -> int:
        while True:
            match = _BODY_OPEN.search(masked, pos)
            if match is None:
                return -1
            # A declaration without a body: the next top-level func starts first.
            if masked.find("\nfunc", pos, match.start()) != -1:
                return -1
            if match.group() == "{":
                return match.start()
            close = find_closing(masked, match.end() - 1)
            if close == -1:
                return -1
            pos = close + 1

    def _build_test_function(
        self, decl: _FunctionDecl, text: str, masked: str, index: LineIndex
    ) -> TestFunctionFact:
        return TestFunctionFact(
            name=decl.name,
            line=decl.line,
            receiver_var=decl.receiver_var,
            receiver_type_name=decl.receiver_type,
            body=text[decl.body_open:decl.body_close + 1],
            template_calls=self._extract_template_calls(decl, text, masked, index),
        )

    def _extract_template_calls(
        self, decl: _FunctionDecl, text: str, masked: str, index: LineIndex
    ) -> List[TemplateCallFact]:
        sites: List[Tuple[int, Optional[str], Optional[str], Optional[str], str]] = []

        for field in patterns.CONFIG_FIELD.finditer(masked, decl.body_open, decl.body_close):
            start = field.end()
            end = expression_end(masked, start)
            receiver_var, struct_name, method = self._parse_config_expression(
                masked[start:end].strip(), masked, decl.body_open, field.start()
            )
            sites.append((field.start(), receiver_var, struct_name, method, text[start:end]))

        for step in patterns.REQUIRES_IMPORT_STEP.finditer(masked, decl.body_open, decl.body_close):
            sites.append((step.start(), step.group(1), None, step.group(2), text[step.start():step.end()]))

        calls = []
        for step_index, (offset, receiver_var, struct_name, method, expression) in enumerate(sorted(sites), start=1):
            if method is None:
                logger.debug(f"Unrecognized step configuration in {decl.name}: {normalize_whitespace(expression)}")
                continue
            calls.append(TemplateCallFact(
                step_index=step_index,
                receiver_var=receiver_var,
                struct_name=struct_name,
                method_name=method,
                expression=normalize_whitespace(expression),
                line=index.line_of(offset),
            ))
        return calls

    @staticmethod
    def _parse_config_expression(
        expression: str, masked: str, body_start: int, site: int
    ) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Returns (receiver variable, struct literal name, method) for a Config value."""
        literal = patterns.STRUCT_LITERAL_CALL_EXPR.match(expression)
        if literal:
            return None, literal.group(1), literal.group(2)

        call = patterns.METHOD_CALL_EXPR.match(expression)
        if call:
            return call.group(1), None, call.group(2)

        wrapped = patterns.FUNC_LITERAL_RETURN.match(expression)
        if wrapped:
            return wrapped.group(1), None, wrapped.group(2)

        ident = patterns.IDENT_EXPR.match(expression)
        if ident:
            # Config: config  ->  the latest `config := r.method(...)` before this step
            assigned = None
            for match in patterns.ASSIGNED_METHOD_CALL.finditer(masked, body_start, site):
                if match.group(1) == ident.group(1):
                    assigned = match
            if assigned:
                return assigned.group(2), None, assigned.group(3)

        return None, None, None

    def _build_helper(
        self,
        decl: _FunctionDecl,
        text: str,
        masked: str,
        uncommented: str,
        index: LineIndex,
        constructors: Dict[str, str],
    ) -> HelperFact:
        return HelperFact(
            name=decl.name,
            line=decl.line,
            receiver_var=decl.receiver_var,
            receiver_type_name=decl.receiver_type,
            body=text[decl.body_open:decl.body_close + 1],
            direct_references=self._extract_direct_references(decl, uncommented, index),
            call_edges=self._extract_call_edges(decl, text, masked, index, constructors),
        )

    def _extract_direct_references(
        self, decl: _FunctionDecl, uncommented: str, index: LineIndex
    ) -> List[DirectReferenceFact]:
        refs = []
        body = uncommented[decl.body_open:decl.body_close + 1]
        first_line = index.line_of(decl.body_open)

        for line_number, line in enumerate(body.split("\n")):
            line_offset = first_line + line_number - decl.line
            context = normalize_whitespace(line)
            declared = set()

            block = self._block_pattern.match(line)
            if block:
                declared.add(block.group(2))
                refs.append(DirectReferenceFact(
                    entity_name=block.group(2),
                    kind=ReferenceKind.FULL_DECLARATION,
                    block_keyword=block.group(1),
                    line_offset=line_offset,
                    context=context,
                ))

            mentioned = set()
            for attribute in self._attribute_pattern.finditer(line):
                entity = attribute.group(1)
                if entity in declared or entity in mentioned:
                    continue
                mentioned.add(entity)
                refs.append(DirectReferenceFact(
                    entity_name=entity,
                    kind=ReferenceKind.ATTRIBUTE_MENTION,
                    line_offset=line_offset,
                    context=context,
                ))
        return refs

    def _extract_call_edges(
        self, decl: _FunctionDecl, text: str, masked: str, index: LineIndex, constructors: Dict[str, str]
    ) -> List[CallEdgeFact]:
        start, end = decl.body_open, decl.body_close + 1
        body = masked[start:end]
        found: List[Tuple[int, HelperCallKind, str, Optional[str], int]] = []

        if decl.receiver_var and decl.receiver_var != "_":
            for call in patterns.receiver_call(decl.receiver_var).finditer(body):
                found.append((call.start(), HelperCallKind.CALLS_HELPER, call.group(1), None, call.end()))

        literal_starts = set()
        for literal in patterns.STRUCT_LITERAL_METHOD.finditer(body):
            if literal.group(1) in patterns.INSTANTIATION_DENYLIST:
                continue
            literal_starts.add(literal.start(1))
            found.append((literal.start(), HelperCallKind.INSTANTIATES_STRUCT,
                          literal.group(1), literal.group(2), literal.end()))

        for variable, type_name in patterns.local_bindings(body, constructors).items():
            if variable == decl.receiver_var:
                continue
            for call in patterns.receiver_call(variable).finditer(body):
                found.append((call.start(), HelperCallKind.INSTANTIATES_STRUCT,
                              type_name, call.group(1), call.end()))

        for bare in patterns.BARE_INSTANTIATION.finditer(body):
            if bare.group(1) in patterns.INSTANTIATION_DENYLIST or bare.start(1) in literal_starts:
                continue
            found.append((bare.start(), HelperCallKind.INSTANTIATES_STRUCT, bare.group(1), None, bare.end()))

        edges = []
        for offset, kind, target, method, match_end in sorted(found, key=lambda f: (f[0], f[1].value)):
            absolute = start + offset
            expression_stop = start + match_end
            if body[match_end - 1] == "(":
                close = find_closing(masked, expression_stop - 1)
                if close != -1:
                    expression_stop = close + 1
            edges.append(CallEdgeFact(
                kind=kind,
                target_name=target,
                target_method=method,
                line_offset=index.line_of(absolute) - decl.line,
                expression=normalize_whitespace(text[absolute:expression_stop]),
            ))
        return edges

    def _extract_sequential(
        self, text: str, masked: str, index: LineIndex, test_spans: List[Tuple[int, int, str]]
    ) -> Tuple[List[SequentialMappingFact], int]:
        mappings: List[SequentialMappingFact] = []
        skipped = 0

        for literal in find_sequencing_literals(text, masked):
            if literal.malformed:
                skipped += 1
                continue
            entry = _enclosing(test_spans, literal.offset)
            if entry is None:
                logger.debug(f"Sequencing literal at line {index.line_of(literal.offset)} is outside any test function")
                skipped += 1
                continue
            for item in literal.entries:
                mappings.append(SequentialMappingFact(
                    entry_function=entry,
                    group=item.group,
                    key=item.key,
                    referenced_name=item.referenced_name,
                    declared_index=item.declared_index,
                    line=index.line_of(item.offset),
                ))

        if self._track_subtests:
            for body_open, body_close, name in test_spans:
                for item in find_subtest_runs(text, masked, body_open, body_close):
                    mappings.append(SequentialMappingFact(
                        entry_function=name,
                        group=item.group,
                        key=item.key,
                        referenced_name=item.referenced_name,
                        declared_index=item.declared_index,
                        line=index.line_of(item.offset),
                    ))

        return mappings, skipped


def _enclosing(spans: List[Tuple[int, int, str]], offset: int) -> Optional[str]:
    for body_open, body_close, name in spans:
        if body_open <= offset <= body_close:
            return name
    return None
