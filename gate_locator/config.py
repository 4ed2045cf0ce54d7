import dataclasses
import os
from typing import List, Optional, Tuple

import dotenv
from rich import console

console_instance = console.Console()

# Load environment variables from .env file
dotenv.load_dotenv()

_TRUE_VALUES = ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        console_instance.print(f"[yellow]Warning: {name}={value!r} is not an integer, using {default}.[/yellow]")
        return default


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _get_extensions(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    extensions = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        extensions.append(part if part.startswith(".") else "." + part)
    return tuple(extensions) or default


@dataclasses.dataclass(frozen=True)
class LocatorConfig:
    """
    Settings handed to every gate invocation.

    Read from the environment (or a .env file) with `from_env`, or built
    directly in tests and callers that want explicit values.
    """
    indent_width: int = 2
    kubesec_extensions: Tuple[str, ...] = (".yaml", ".yml")
    whispers_extensions: Tuple[str, ...] = (".yaml", ".json")
    debug_search: bool = False
    max_lines: int = 0 # 0 scans whole documents

    @classmethod
    def from_env(cls) -> "LocatorConfig":
        defaults = cls()
        return cls(
            indent_width=max(1, _get_int("GATE_LOCATOR_INDENT_WIDTH", defaults.indent_width)),
            kubesec_extensions=_get_extensions("GATE_LOCATOR_KUBESEC_EXTENSIONS", defaults.kubesec_extensions),
            whispers_extensions=_get_extensions("GATE_LOCATOR_WHISPERS_EXTENSIONS", defaults.whispers_extensions),
            debug_search=_get_bool("GATE_LOCATOR_DEBUG_SEARCH", defaults.debug_search),
            max_lines=max(0, _get_int("GATE_LOCATOR_MAX_LINES", defaults.max_lines)),
        )


@dataclasses.dataclass
class GetFileSettings:
    """Which files a gate looks at: extensions to keep and the roots to walk."""
    file_extensions: List[str]
    paths_to_search: Optional[List[str]] = None


def get_files(settings: GetFileSettings, files: Optional[List[str]] = None) -> List[str]:
    """
    Lists the files a gate should scan.

    A non-empty `files` list (for example files saved since the last scan)
    replaces walking `settings.paths_to_search`. Only names ending in one of
    `settings.file_extensions` are kept.
    """
    if files:
        candidates = list(files)
    else:
        candidates = []
        for root in settings.paths_to_search or []:
            if os.path.isfile(root):
                candidates.append(root)
                continue
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                for filename in sorted(filenames):
                    candidates.append(os.path.join(dirpath, filename))

    extensions = tuple(settings.file_extensions)
    return [path for path in candidates if path.endswith(extensions)]
