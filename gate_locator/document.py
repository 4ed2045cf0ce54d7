import dataclasses
import re
from typing import List, Optional, Sequence, Tuple

from rich import console

console_instance = console.Console()

# Tabs are expanded to this many columns when measuring indentation.
TAB_SIZE = 4

_QUOTED_KEY_RE = re.compile(r"""^(["'])(.*?)\1\s*:""")


@dataclasses.dataclass(frozen=True)
class Line:
    """A single document line split into its indentation and declared key."""
    line_number: int # Zero-based index in the original document
    content: str
    indent: int      # Leading whitespace width, tabs expanded
    key_column: int  # Column where the key token starts, after any "- " sequence markers
    key: str         # The declared key ("name" for `- name: x` or `"name": 1`), or the bare token
    is_list_item: bool = False

    @property
    def is_skippable(self) -> bool:
        """Blank lines and comment lines never open or close a block."""
        stripped = self.content.strip()
        return not stripped or stripped.startswith("#")


def parse_line(line_number: int, content: str) -> Line:
    """Splits a raw line into indentation, sequence marker and key token."""
    expanded = content.expandtabs(TAB_SIZE)
    stripped = expanded.lstrip()
    indent = len(expanded) - len(stripped)
    key_column = indent
    is_list_item = False

    # YAML sequence entries: "- key: value", "- - key: value" or a bare "-"
    while stripped == "-" or stripped.startswith("- "):
        is_list_item = True
        rest = stripped[1:]
        without_space = rest.lstrip()
        key_column += 1 + len(rest) - len(without_space)
        stripped = without_space

    return Line(
        line_number=line_number,
        content=content,
        indent=indent,
        key_column=key_column,
        key=_extract_key(stripped),
        is_list_item=is_list_item,
    )


def _extract_key(text: str) -> str:
    text = text.strip()
    if not text:
        return ""
    quoted = _QUOTED_KEY_RE.match(text)
    if quoted:
        return quoted.group(2)
    key, separator, _ = text.partition(":")
    if separator:
        return key.strip().strip("\"'")
    return text.rstrip(",").strip("\"'")


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> List[str]:
    """Splits text on newlines, dropping the single empty line after a trailing newline."""
    text = normalize_newlines(text)
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


@dataclasses.dataclass(frozen=True)
class Document:
    """
    The lines of one source file plus a cursor into them.

    `lines` is the original content and is never modified. `start` marks the
    first line still available for a terminal match: a fresh document starts
    at 0 and every successful search returns a copy whose `start` sits just
    past the matched line, so repeated searches walk forward through
    duplicate occurrences.
    """
    lines: Tuple[str, ...] = ()
    start: int = 0
    path: Optional[str] = None

    @classmethod
    def from_text(cls, text: str, path: Optional[str] = None) -> "Document":
        return cls(lines=tuple(split_lines(text)), path=path)

    @classmethod
    def from_lines(cls, lines: Sequence[str], path: Optional[str] = None) -> "Document":
        return cls(lines=tuple(lines), path=path)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def remaining_lines(self) -> Tuple[str, ...]:
        return self.lines[self.start:]

    @property
    def is_exhausted(self) -> bool:
        return self.start >= len(self.lines)

    def parsed_lines(self) -> List[Line]:
        return [parse_line(number, content) for number, content in enumerate(self.lines)]

    def consume_through(self, line_number: int) -> "Document":
        """Returns a copy with every line up to and including `line_number` consumed."""
        new_start = max(self.start, min(line_number + 1, len(self.lines)))
        return dataclasses.replace(self, start=new_start)

    def reset(self) -> "Document":
        """Returns a fresh copy with nothing consumed."""
        return dataclasses.replace(self, start=0)

    def __len__(self) -> int:
        return len(self.lines)


def read_file_by_lines(path: str) -> Optional[Document]:
    """Reads a file into a Document. Returns None if the file cannot be read."""
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        console_instance.print(f"[yellow]There is no such file! {path}: {e}[/yellow]")
        return None
    return Document.from_text(text, path=path)
