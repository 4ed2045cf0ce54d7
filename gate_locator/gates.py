import json
import os
from typing import Any, Dict, List, Optional, Set, Tuple

from rich import console
from rich.markup import escape

from gate_locator import search
from gate_locator.config import LocatorConfig
from gate_locator.document import Document, read_file_by_lines
from gate_locator.gate_data import GateData, GateResult, Location
from gate_locator.selector import PathSegment, Selector, SelectorKind

console_instance = console.Console()

KUBESEC_LABELS = ["critical", "advise"]
KUBESEC_PASSED_LABEL = "passed"
WHISPERS_LABEL = "secrets"

SARIF_LEVEL_LABELS = {
    "error": "Error",
    "warning": "Warning",
    "note": "Note",
}
SARIF_UNLEVELED_LABEL = "Un Level"
SARIF_LABELS = ["Error", "Warning", "Note", SARIF_UNLEVELED_LABEL]


class FileLocator:
    """
    Resolves the findings of one file, in the order they are given.

    Selectors that normalize to the same segments share one remaining
    document, so a path or secret reported twice points at its first and then
    its second occurrence, while an unrelated selector still searches from the
    top of the file.
    """

    def __init__(self, document: Document, config: Optional[LocatorConfig] = None):
        self._document = document
        self._config = config or LocatorConfig()
        self._remaining: Dict[Tuple[SelectorKind, Tuple[PathSegment, ...]], Document] = {}

    @property
    def document(self) -> Document:
        return self._document

    def locate(self, selector: Selector) -> Tuple[Location, search.SearchResult]:
        segments = selector.segments
        key = (selector.kind, segments)
        remaining = self._remaining.get(key, self._document)
        result = search.hierarchy_search_in_file(
            remaining, segments,
            max_lines=self._config.max_lines,
            debug=self._config.debug_search,
        )
        if not result.found:
            return Location(search.NOT_FOUND, 0), result

        self._remaining[key] = result.remaining_document
        column = search.highlight_column(
            self._document.lines[result.requested_line],
            result.depth,
            segments[-1],
            indent_width=self._config.indent_width,
        )
        return Location(result.requested_line, column), result


def load_report(path: str, allow_single_quotes: bool = False) -> Any:
    """
    Loads a JSON scanner report.

    With `allow_single_quotes`, a report printed with Python-style quotes
    ('name': 'x') is accepted by swapping the quotes and parsing again.
    """
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        if allow_single_quotes:
            try:
                return json.loads(text.replace("'", '"'))
            except json.JSONDecodeError:
                pass
        console_instance.print(f"[bold red]Could not parse report {path}: {e}[/bold red]")
        raise ValueError(f"Report {path} is not valid JSON: {e}") from e


def _resolve_path(file_path: Any, root: Optional[str]) -> str:
    if not isinstance(file_path, str):
        raise _invalid(f"File names must be strings, got {type(file_path).__name__}")
    if file_path.startswith("file://"):
        file_path = file_path[len("file://"):]
    if root and not os.path.isabs(file_path):
        return os.path.join(root, file_path)
    return file_path


def _invalid(message: str) -> ValueError:
    console_instance.print(f"[bold red]{escape(message)}[/bold red]")
    return ValueError(message)


def _require_list(value: Any, what: str, optional: bool = False) -> List[Any]:
    if value is None and optional:
        return []
    if not isinstance(value, list):
        raise _invalid(f"{what} must be a list, got {type(value).__name__}")
    return value


def _require_objects(value: Any, what: str, optional: bool = False) -> List[Dict[str, Any]]:
    items = _require_list(value, what, optional)
    for item in items:
        if not isinstance(item, dict):
            raise _invalid(f"{what} entries must be objects, got {type(item).__name__}")
    return items


def _require_object(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _invalid(f"{what} must be an object, got {type(value).__name__}")
    return value


def _selection(files: Optional[List[str]]) -> Optional[Set[str]]:
    if files is None:
        return None
    return {os.path.abspath(path) for path in files}


def _warn_not_found(selector: Selector):
    console_instance.print(f"[yellow]{escape(str(selector))} not found![/yellow]")


def kubesec_gate(
    report: Any,
    root: Optional[str] = None,
    file_path: Optional[str] = None,
    config: Optional[LocatorConfig] = None,
    include_passed: bool = False,
    files: Optional[List[str]] = None,
) -> GateData:
    """
    Locates every kubesec scoring item in the manifest it was reported for.

    Args:
        report: Parsed kubesec output, a list of objects carrying `fileName`
            and `scoring` ({"critical": [...], "advise": [...], "passed": [...]},
            each item with `id`, `selector` and `reason`).
        root: Directory that relative file names are resolved against.
        file_path: Use this manifest for every entry instead of `fileName`
            (kubesec reports "API" when it scanned posted content).
        config: Locator settings.
        include_passed: Also locate the checks that passed.
        files: When given, only entries for these manifests are located (see
            `config.get_files`).

    Returns:
        GateData with one ResultsList per label.
    """
    config = config or LocatorConfig()
    labels = KUBESEC_LABELS + ([KUBESEC_PASSED_LABEL] if include_passed else [])
    gate_data = GateData.with_labels(labels)
    locators: Dict[str, FileLocator] = {}
    selected = _selection(files)

    for entry in _require_objects(report, "kubesec report"):
        manifest = _resolve_path(file_path or entry.get("fileName") or "", root)
        scoring = _require_object(entry.get("scoring"), f"kubesec scoring for {manifest}")
        if selected is not None and os.path.abspath(manifest) not in selected:
            continue

        if manifest not in locators:
            document = read_file_by_lines(manifest)
            if document is None:
                continue
            locators[manifest] = FileLocator(document, config)
        locator = locators[manifest]

        for label in labels:
            items = _require_objects(scoring.get(label), f"kubesec {label} items", optional=True)
            if not items:
                continue
            file_messages = gate_data.find(label).file_messages(manifest)
            for item in items:
                selector = Selector.structural(item.get("selector", ""))
                location, _ = locator.locate(selector)
                if not location.found:
                    _warn_not_found(selector)
                message = ": ".join(str(part) for part in (item.get("id"), item.get("reason")) if part)
                file_messages.messages.append(GateResult(location, message))

    return gate_data.drop_empty_files()


def whispers_gate(
    report: Any,
    root: Optional[str] = None,
    config: Optional[LocatorConfig] = None,
    files: Optional[List[str]] = None,
) -> GateData:
    """
    Locates every secret whispers found.

    The report lists `{"name": <file>, "secrets": ["<value> <key>", ...]}`.
    The value (first token) is what gets searched for in the file, and
    repeated values resolve to successive lines. With `files`, entries for
    other files are skipped.
    """
    config = config or LocatorConfig()
    gate_data = GateData.with_labels([WHISPERS_LABEL])
    secrets_list = gate_data.find(WHISPERS_LABEL)
    selected = _selection(files)

    for entry in _require_objects(report, "whispers report"):
        secrets = _require_list(entry.get("secrets"), "whispers secrets", optional=True)
        if not secrets:
            continue
        file_path = _resolve_path(entry.get("name") or "", root)
        if selected is not None and os.path.abspath(file_path) not in selected:
            continue
        document = read_file_by_lines(file_path)
        if document is None:
            continue

        locator = FileLocator(document, config)
        file_messages = secrets_list.file_messages(file_path)
        for secret in secrets:
            selector = Selector.literal(str(secret))
            location, _ = locator.locate(selector)
            if not location.found:
                _warn_not_found(selector)
            file_messages.messages.append(GateResult(location, str(secret)))

    return gate_data.drop_empty_files()


def _sarif_message(result: Dict[str, Any], rules: List[Dict[str, Any]]) -> str:
    rule_index = result.get("ruleIndex")
    if isinstance(rule_index, int) and 0 <= rule_index < len(rules):
        description = _require_object(rules[rule_index].get("fullDescription"), "SARIF rule fullDescription")
        if description.get("text"):
            return str(description["text"])
    return str(_require_object(result.get("message"), "SARIF result message").get("text", ""))


def template_analyzer_gate(sarif: Any, root: Optional[str] = None) -> GateData:
    """
    Groups a template-analyzer SARIF log by level.

    SARIF regions already carry one-based line and column numbers, so results
    are only converted to zero-based locations. Files are resolved against
    `root`.
    """
    if not isinstance(sarif, dict) or not isinstance(sarif.get("runs"), list):
        raise _invalid("SARIF log must be an object with a 'runs' list")

    gate_data = GateData.with_labels(SARIF_LABELS)
    if not sarif["runs"]:
        return gate_data

    run = _require_object(sarif["runs"][0], "SARIF run")
    driver = _require_object(_require_object(run.get("tool"), "SARIF tool").get("driver"), "SARIF driver")
    rules = _require_objects(driver.get("rules"), "SARIF rules", optional=True)
    for result in _require_objects(run.get("results"), "SARIF results", optional=True):
        level = result.get("level")
        label = SARIF_LEVEL_LABELS.get(level, SARIF_UNLEVELED_LABEL) if isinstance(level, str) else SARIF_UNLEVELED_LABEL
        locations = _require_objects(result.get("locations"), "SARIF result locations", optional=True)
        physical = _require_object(locations[0].get("physicalLocation") if locations else None,
                                   "SARIF physicalLocation")
        uri = _require_object(physical.get("artifactLocation"), "SARIF artifactLocation").get("uri") or ""
        region = _require_object(physical.get("region"), "SARIF region")

        line = region.get("startLine")
        column = region.get("startColumn", 1)
        location = Location(
            line - 1 if isinstance(line, int) and line > 0 else search.NOT_FOUND,
            column - 1 if isinstance(column, int) and column > 0 else 0,
        )
        file_messages = gate_data.find(label).file_messages(_resolve_path(uri, root))
        file_messages.messages.append(GateResult(location, _sarif_message(result, rules)))

    return gate_data.drop_empty_files()
