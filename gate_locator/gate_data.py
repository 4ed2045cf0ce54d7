import dataclasses
import os
from typing import Any, Dict, List, Optional

from gate_locator.search import NOT_FOUND


@dataclasses.dataclass
class Location:
    """Zero-based line and the column where highlighting starts."""
    line_number: int
    column_number: int = 0

    @property
    def found(self) -> bool:
        return self.line_number != NOT_FOUND


@dataclasses.dataclass
class GateResult:
    location: Location
    message: str


@dataclasses.dataclass
class FileMessages:
    """All results a gate reported for one file."""
    file_path: str
    file_name: str
    messages: List[GateResult] = dataclasses.field(default_factory=list)

    @classmethod
    def for_path(cls, file_path: str) -> "FileMessages":
        return cls(file_path=file_path, file_name=os.path.basename(file_path))

    @property
    def unresolved(self) -> List[GateResult]:
        return [message for message in self.messages if not message.location.found]


@dataclasses.dataclass
class ResultsList:
    """Results grouped under one label of a gate, e.g. "critical" or "secrets"."""
    label: str
    result: List[FileMessages] = dataclasses.field(default_factory=list)

    def file_messages(self, file_path: str) -> FileMessages:
        """Returns the entry for `file_path`, adding an empty one if needed."""
        for entry in self.result:
            if entry.file_path == file_path:
                return entry
        entry = FileMessages.for_path(file_path)
        self.result.append(entry)
        return entry

    @property
    def total_messages(self) -> int:
        return sum(len(entry.messages) for entry in self.result)


@dataclasses.dataclass
class GateData:
    data: List[ResultsList] = dataclasses.field(default_factory=list)

    @classmethod
    def with_labels(cls, labels: List[str]) -> "GateData":
        return cls([ResultsList(label) for label in labels])

    def find(self, label: str) -> Optional[ResultsList]:
        for results in self.data:
            if results.label == label:
                return results
        return None

    @property
    def total_messages(self) -> int:
        return sum(results.total_messages for results in self.data)

    def drop_empty_files(self) -> "GateData":
        for results in self.data:
            results.result = [entry for entry in results.result if entry.messages]
        return self

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)
