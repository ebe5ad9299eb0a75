"""Per-stage error collection for batch runs."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from ..exceptions import YieldGapError


@dataclass
class RowIssue:
    """One row-level problem recorded by a pipeline stage."""

    row_id: str
    error: YieldGapError

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class StageReport:
    """Issues collected while a stage processed a batch."""

    stage: str
    n_rows: int = 0
    issues: List[RowIssue] = field(default_factory=list)
    fatal: Optional[YieldGapError] = None

    def add(self, row_id: str, error: YieldGapError) -> None:
        error.stage = error.stage or self.stage
        error.row_id = error.row_id or row_id
        self.issues.append(RowIssue(row_id=row_id, error=error))

    @property
    def affected_rows(self) -> List[str]:
        return sorted({issue.row_id for issue in self.issues})

    @property
    def n_affected(self) -> int:
        return len(self.affected_rows)

    @property
    def failure_rate(self) -> float:
        if self.fatal is not None:
            return 1.0
        return self.n_affected / self.n_rows if self.n_rows else 0.0

    @property
    def ok(self) -> bool:
        return self.fatal is None and not self.issues

    def counts_by_kind(self) -> Dict[str, int]:
        return dict(Counter(issue.kind for issue in self.issues))

    def summary(self) -> str:
        if self.fatal is not None:
            return f"{self.stage}: FAILED ({type(self.fatal).__name__}: {self.fatal})"
        if not self.issues:
            return f"{self.stage}: {self.n_rows} rows, no issues"
        kinds = ", ".join(f"{kind}: {count}" for kind, count in sorted(self.counts_by_kind().items()))
        return f"{self.stage}: {self.n_affected} of {self.n_rows} rows affected ({kinds})"

    def to_dict(self) -> Dict[str, object]:
        return {
            "stage": self.stage,
            "n_rows": self.n_rows,
            "n_affected": self.n_affected,
            "failure_rate": self.failure_rate,
            "counts_by_kind": self.counts_by_kind(),
            "fatal": str(self.fatal) if self.fatal is not None else None,
        }
