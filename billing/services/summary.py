from typing import Any, Dict, List

SUCCESS = "success"
SKIPPED = "skipped"
DEACTIVATED = "deactivated"
ERROR = "error"

COUNTERS = {
    SUCCESS: "successful",
    SKIPPED: "skipped",
    DEACTIVATED: "deactivated",
    ERROR: "failed",
}


class RunSummary:
    """Per-entity outcomes of one scheduler run."""

    def __init__(self, *outcomes: str):
        self.counts = {COUNTERS[outcome]: 0 for outcome in outcomes}
        self.details: List[Dict[str, Any]] = []

    def record(self, outcome: str, **detail: Any) -> Dict[str, Any]:
        entry = {"result": outcome, **detail}
        key = COUNTERS[outcome]
        self.counts[key] = self.counts.get(key, 0) + 1
        self.details.append(entry)
        return entry

    @property
    def processed(self) -> int:
        return len(self.details)

    def as_dict(self) -> Dict[str, Any]:
        return {"processed": self.processed, **self.counts, "details": list(self.details)}
