import dataclasses
from typing import List, Optional, Sequence

from rich import console

from gate_locator.document import Document, Line, parse_line
from gate_locator.selector import PathSegment

NOT_FOUND = -1
DEFAULT_INDENT_WIDTH = 2

SEARCH_LOG_FILE = "search_log.txt"


@dataclasses.dataclass(frozen=True)
class SearchResult:
    """
    Outcome of one hierarchy search.

    requested_line: zero-based line index in the original document, or -1.
    depth: number of blocks enclosing the matched line.
    remaining_document: the document to use for the next search of the same
        file, positioned past the match so a duplicate resolves further down.
    """
    requested_line: int
    depth: int
    remaining_document: Document

    @property
    def found(self) -> bool:
        return self.requested_line != NOT_FOUND


def compute_depths(lines: Sequence[Line]) -> List[int]:
    """
    Nesting depth of every line, counted in blocks rather than characters.

    A line is nested in every preceding line whose key starts in a smaller
    column and that has not been closed yet. Blank and comment lines take the
    depth of the line before them.
    """
    depths = []
    open_columns: List[int] = []
    for line in lines:
        if line.is_skippable:
            depths.append(len(open_columns))
            continue
        while open_columns and open_columns[-1] >= line.key_column:
            open_columns.pop()
        depths.append(len(open_columns))
        open_columns.append(line.key_column)
    return depths


def _block_end(lines: Sequence[Line], parent: int, limit: int) -> int:
    """Index just past the last line nested under `parent`."""
    parent_column = lines[parent].key_column
    position = parent + 1
    while position < limit:
        line = lines[position]
        if not line.is_skippable and line.key_column <= parent_column:
            break
        position += 1
    return position


def _matches(line: Line, segment: PathSegment, depth: int) -> bool:
    # Literal fragments may sit anywhere, comments included.
    if segment.literal:
        return segment.name in line.content
    if line.is_skippable:
        return False
    if segment.top_level and depth != 0:
        return False
    return line.key == segment.name


class _HierarchySearch:

    def __init__(self, lines: List[Line], depths: List[int], segments: Sequence[PathSegment],
                 floor: int, trace: Optional[console.Console] = None):
        self._lines = lines
        self._depths = depths
        self._segments = segments
        self._floor = floor
        self._trace = trace

    def find(self, index: int, begin: int, end: int) -> Optional[int]:
        """First line satisfying segments[index:] within [begin, end), or None."""
        segment = self._segments[index]
        is_last = index == len(self._segments) - 1
        position = max(begin, self._floor) if is_last else begin

        while position < end:
            line = self._lines[position]
            if not _matches(line, segment, self._depths[position]):
                position += 1
                continue

            if self._trace:
                self._trace.print(f"segment {index} '{segment}' matched line {position}: {line.content}")
            if is_last:
                return position

            child_end = _block_end(self._lines, position, end)
            found = self.find(index + 1, position + 1, child_end)
            if found is not None:
                return found
            position += 1
        return None


def hierarchy_search_in_file(
    document: Document,
    segments: Sequence[PathSegment],
    max_lines: int = 0,
    debug: bool = False,
) -> SearchResult:
    """
    Finds the line that satisfies the last segment, nested under lines matching the earlier ones.

    Each segment after the first must match inside the block opened by the
    previous match. The first line in document order wins, and only lines at
    or after `document.start` may satisfy the last segment. Ancestors may sit
    before the cursor, so a path that repeats under one parent still resolves
    to its next occurrence.

    Args:
        document: The file to search. Its `start` cursor comes from a
            previous result's `remaining_document` when resolving duplicates.
        segments: Normalized selector segments, outermost first.
        max_lines: Scan at most this many lines past `document.start`.
            0 means no limit.
        debug: Append a trace of the matching to SEARCH_LOG_FILE.

    Returns:
        A SearchResult. Nothing is raised: an empty segment list, an empty
        document or a missing path all give requested_line == -1 and the
        document unchanged.
    """
    if not segments or document.is_exhausted:
        return SearchResult(NOT_FOUND, 0, document)

    lines = document.parsed_lines()
    end = len(lines) if max_lines <= 0 else min(len(lines), document.start + max_lines)
    depths = compute_depths(lines)

    log_file = open(SEARCH_LOG_FILE, "a", encoding="utf-8") if debug else None
    try:
        trace = console.Console(file=log_file, markup=False, highlight=False) if log_file else None
        if trace:
            trace.print(f"==== SEARCH {' '.join(str(s) for s in segments)} from line {document.start} ====")
        found = _HierarchySearch(lines, depths, segments, document.start, trace).find(0, 0, end)
    finally:
        if log_file:
            log_file.close()

    if found is None:
        return SearchResult(NOT_FOUND, 0, document)
    return SearchResult(found, depths[found], document.consume_through(found))


def highlight_column(line_text: str, depth: int, segment: Optional[PathSegment] = None,
                     indent_width: int = DEFAULT_INDENT_WIDTH) -> int:
    """
    Column where highlighting of a matched line should begin.

    That is where the key (or the literal fragment) starts on the line. When it
    cannot be found there, fall back to `depth * indent_width`.
    """
    if segment is not None and segment.literal:
        column = line_text.find(segment.name)
        if column != -1:
            return column
    else:
        line = parse_line(0, line_text)
        if line.key and (segment is None or line.key == segment.name):
            column = line_text.find(line.key)
            if column != -1:
                return column
    return max(depth, 0) * indent_width
