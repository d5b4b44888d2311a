"""Data models for Loki queries and tool responses."""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
from datetime import datetime

# Result limit applied when the caller does not set one
DEFAULT_LIMIT = 1000
# Largest limit a caller may request
MAX_LIMIT = 5000

OUTPUT_MODES = ("default", "raw", "jsonl")


@dataclass(frozen=True)
class LokiQueryOptions:
    """Per-call options for a Loki log query."""
    from_time: Optional[datetime] = None
    to_time: Optional[datetime] = None
    limit: Optional[int] = None
    batch: Optional[int] = None
    output: Optional[str] = None  # "default", "raw" or "jsonl"
    quiet: bool = False
    forward: Optional[bool] = None  # None means the caller did not choose a direction

    def __post_init__(self):
        if self.output is not None and self.output not in OUTPUT_MODES:
            raise ValueError(f"Unsupported output mode: {self.output!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary, excluding None values."""
        data = asdict(self)
        for key in ("from_time", "to_time"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class LabelListResponse:
    """Label names or label values returned by Loki."""
    items: List[str]

    def to_text(self) -> str:
        """Newline-joined text, the wire format of the label tools."""
        return "\n".join(self.items)

    @classmethod
    def from_lines(cls, output: str) -> "LabelListResponse":
        """Build from line-oriented command output, dropping blank lines."""
        return cls(items=[line.strip() for line in output.splitlines() if line.strip()])
