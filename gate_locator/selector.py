import dataclasses
import enum
import re
from typing import List, Tuple

# Everything after one of these is a comparison or filter, not a path.
# This is a lexical cut, so a key that itself contains "-" gets truncated too.
SELECTOR_OPERATOR_TOKENS = ["|", "==", "-"]

ARRAY_MARKER = "[]"
METADATA_KEY = "metadata"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclasses.dataclass(frozen=True)
class PathSegment:
    """One step of a selector, outermost first."""
    name: str
    repeatable: bool = False # Came from an array token such as "containers[]"
    literal: bool = False    # Matched anywhere in the line text instead of against the key
    top_level: bool = False  # Only matches lines that are not nested in any block

    def __str__(self):
        return self.name + (ARRAY_MARKER if self.repeatable else "")


class SelectorKind(enum.Enum):
    STRUCTURAL = "structural"
    LITERAL = "literal"


def truncate_at_operators(selector: str, operators: List[str] = SELECTOR_OPERATOR_TOKENS) -> str:
    """Cuts the selector at each operator token in turn."""
    for operator in operators:
        index = selector.find(operator)
        if index != -1:
            selector = selector[:index]
    return selector


def normalize_structural(selector: str) -> List[PathSegment]:
    """
    Turns a jq-like path into ordered segments.

    Examples:
        ".spec .serviceAccountName"                       -> [spec, serviceAccountName]
        "containers[] .securityContext .runAsUser -gt 10" -> [containers[], securityContext, runAsUser]
        ".metadata .labels .app"                          -> [metadata]

    Returns an empty list when nothing usable is left.
    """
    if not isinstance(selector, str) or not selector.strip():
        return []

    text = selector.strip()
    if text.startswith("."):
        text = text[1:]
    text = truncate_at_operators(text)
    tokens = [token for token in _WHITESPACE_RE.sub("", text).split(".") if token]
    if not tokens:
        return []

    if METADATA_KEY in tokens[0]:
        # The scanner over-qualifies metadata paths; only the top-level key is locatable.
        return [PathSegment(METADATA_KEY, top_level=True)]

    segments = []
    for token in tokens:
        repeatable = token.endswith(ARRAY_MARKER)
        name = token[:-len(ARRAY_MARKER)] if repeatable else token
        if name:
            segments.append(PathSegment(name, repeatable=repeatable))
    return segments


def normalize_literal(fragment: str) -> List[PathSegment]:
    """Only the first whitespace-delimited token of a literal fragment is searched for."""
    if not isinstance(fragment, str):
        return []
    tokens = fragment.split()
    if not tokens:
        return []
    return [PathSegment(tokens[0], literal=True)]


def normalize_selector(selector: str, kind: SelectorKind = SelectorKind.STRUCTURAL) -> List[PathSegment]:
    if kind == SelectorKind.LITERAL:
        return normalize_literal(selector)
    return normalize_structural(selector)


@dataclasses.dataclass(frozen=True)
class Selector:
    """A scanner-produced locator together with its dialect."""
    raw: str
    kind: SelectorKind = SelectorKind.STRUCTURAL

    @classmethod
    def structural(cls, raw: str) -> "Selector":
        return cls(raw=raw or "", kind=SelectorKind.STRUCTURAL)

    @classmethod
    def literal(cls, raw: str) -> "Selector":
        return cls(raw=raw or "", kind=SelectorKind.LITERAL)

    @property
    def segments(self) -> Tuple[PathSegment, ...]:
        return tuple(normalize_selector(self.raw, self.kind))

    @property
    def is_locatable(self) -> bool:
        return bool(self.segments)

    def __str__(self):
        return str(self.raw)
