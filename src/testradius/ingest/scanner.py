"""Locate candidate test files and filter them for relevance to one entity."""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Set
from .models import ScanResult, WorkerResult
from ..extraction import patterns
from ..extraction.lexer import mask
from ..utils.errors import CorpusError
from ..utils.logging import get_logger

logger = get_logger("ingest.scanner")


def scan_sources(
    root_dir: str,
    entity_name: str,
    config: Dict[str, Any],
    workers: Optional[int] = None,
) -> ScanResult:
    """
    Find the test files relevant to an entity.

    Candidates are read in parallel, one contiguous chunk per worker. A file
    is relevant when it mentions the entity as a whole token or declares a
    sequencing construct; with struct expansion enabled, files mentioning a
    struct declared in a relevant file are pulled in until nothing changes.

    Args:
        root_dir: Corpus root directory
        entity_name: Entity name, e.g. azurerm_subnet
        config: Analysis configuration
        workers: Worker count override

    Returns:
        ScanResult with root-relative POSIX paths

    Raises:
        CorpusError: If the root is missing or no candidate/relevant file exists
    """
    scanner = config["scanner"]
    root = Path(root_dir)
    if not root.exists():
        raise CorpusError(f"Source root not found: {root_dir}")
    if not root.is_dir():
        raise CorpusError(f"Source root is not a directory: {root_dir}")
    root = root.resolve()

    search_root = root / scanner.get("test_root", "")
    candidates = discover_candidates(
        root,
        search_root,
        scanner.get("test_file_suffix", "_test.go"),
        set(scanner.get("excluded_dirs", [])),
    )
    if not candidates:
        raise CorpusError(
            f"No candidate test files under {search_root}. "
            "Please check the source root and scanner.test_root setting."
        )

    worker_count = _worker_count(workers if workers is not None else scanner.get("workers", 1), len(candidates))
    logger.info(f"Scanning {len(candidates)} candidate files with {worker_count} workers")

    token = patterns.whole_token(entity_name)
    merged = WorkerResult()
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        futures = [
            executor.submit(_scan_chunk, root, chunk, token)
            for chunk in partition(candidates, worker_count)
        ]
        for future in as_completed(futures):
            result = future.result()
            merged.processed += result.processed
            merged.relevant_paths.extend(result.relevant_paths)
            merged.content.update(result.content)
            merged.failed_paths.extend(result.failed_paths)

    relevant = set(merged.relevant_paths)
    if scanner.get("expand_struct_references", True):
        seeds = {path for path in relevant if token.search(merged.content[path])}
        relevant |= expand_relevance(seeds, merged.content)

    if not relevant:
        raise CorpusError(
            f"No test file references {entity_name} under {search_root}. "
            "Please check the entity name."
        )

    registration_content = _read_registrations(root, search_root, set(scanner.get("registration_files", [])))

    relevant_files = sorted(relevant)
    logger.info(
        f"Found {len(relevant_files)} relevant files out of {len(candidates)} candidates "
        f"({len(merged.failed_paths)} read failures)"
    )
    return ScanResult(
        root_dir=str(root),
        candidate_files=candidates,
        relevant_files=relevant_files,
        content={path: merged.content[path] for path in relevant_files},
        registration_content=registration_content,
        read_failures=sorted(merged.failed_paths),
        workers=worker_count,
    )


def discover_candidates(root: Path, search_root: Path, suffix: str, excluded_dirs: Set[str]) -> List[str]:
    """Sorted root-relative paths of files ending with suffix, pruning excluded directories."""
    if not search_root.is_dir():
        return []
    found = []
    for dirpath, dirnames, filenames in os.walk(search_root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded_dirs)
        for filename in filenames:
            if filename.endswith(suffix):
                found.append(Path(dirpath, filename).relative_to(root).as_posix())
    return sorted(found)


def partition(items: List[str], chunks: int) -> List[List[str]]:
    """Split items into at most `chunks` contiguous, non-empty slices."""
    if not items:
        return []
    chunks = max(1, min(chunks, len(items)))
    size, remainder = divmod(len(items), chunks)
    slices = []
    start = 0
    for index in range(chunks):
        end = start + size + (1 if index < remainder else 0)
        slices.append(items[start:end])
        start = end
    return slices


def expand_relevance(seeds: Set[str], content: Dict[str, str]) -> Set[str]:
    """
    Files reachable from seeds through struct names.

    A file joins when it mentions, as a whole token, a struct declared in a
    file already in the set.
    """
    selected = set(seeds)
    known_structs: Set[str] = set()
    frontier = set(seeds)
    while frontier:
        names: Set[str] = set()
        for path in frontier:
            for match in patterns.STRUCT_DECL.finditer(mask(content[path])):
                names.add(match.group(1))
        names -= known_structs
        known_structs |= names
        if not names:
            break
        token = patterns.any_token(names)
        frontier = {
            path for path, text in content.items()
            if path not in selected and token.search(text)
        }
        if frontier:
            logger.debug(f"Struct expansion added {len(frontier)} files")
        selected |= frontier
    return selected


def group_for_path(path: str, anchor_segment: str, fallback: str) -> str:
    """Group of a root-relative path: the segment after the anchor, else the parent directory."""
    parts = PurePosixPath(path).parts
    directories = parts[:-1]
    if anchor_segment in directories:
        position = directories.index(anchor_segment)
        if position + 1 < len(directories):
            return directories[position + 1]
    if directories:
        return directories[-1]
    return fallback


def _worker_count(requested: int, candidates: int) -> int:
    limit = os.cpu_count() or 1
    return max(1, min(int(requested), limit, candidates))


def _scan_chunk(root: Path, paths: List[str], token) -> WorkerResult:
    result = WorkerResult()
    for path in paths:
        try:
            text = (root / path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            result.failed_paths.append(path)
            continue
        result.processed += 1
        result.content[path] = text
        if token.search(text) or patterns.SEQUENCING_MARKER.search(text):
            result.relevant_paths.append(path)
    return result


def _read_registrations(root: Path, search_root: Path, names: Set[str]) -> Dict[str, str]:
    registrations: Dict[str, str] = {}
    if not names or not search_root.is_dir():
        return registrations
    for dirpath, dirnames, filenames in os.walk(search_root):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename not in names:
                continue
            path = Path(dirpath, filename)
            try:
                registrations[path.relative_to(root).as_posix()] = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Failed to read registration file {path}: {e}")
    return registrations
