"""
Processing report data model
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List


@dataclass
class ProcessingReport:
    """Counts and reasons collected while normalizing one upload"""
    original_rows: int = 0
    cleaned_rows: int = 0
    removed_rows: int = 0
    missing_data_removed: int = 0
    duplicates_removed: int = 0
    invalid_dates_removed: int = 0
    validation_errors_removed: int = 0
    language_distribution: Dict[str, int] = field(default_factory=dict)
    non_english_count: int = 0
    errors: List[str] = field(default_factory=list)
    errors_truncated: int = 0
    structure_errors: List[str] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        """True when structural errors stopped processing before any row was read"""
        return bool(self.structure_errors)

    def record_removal(self, reason: str, max_errors: int):
        """Store a removal reason, keeping at most max_errors of them"""
        self.removed_rows += 1
        if len(self.errors) < max_errors:
            self.errors.append(reason)
        else:
            self.errors_truncated += 1

    def to_dict(self) -> dict:
        """Convert report to dictionary"""
        return asdict(self)
