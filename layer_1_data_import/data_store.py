"""
Holder for the currently loaded upload

A new upload replaces the previous rows and report entirely; nothing is merged.
Each store is an ordinary instance, so separate stores never share state.
"""
from typing import List, Optional

from models.report import ProcessingReport
from models.review import CleanedRow


class ReviewDataStore:
    """Current cleaned rows and their processing report"""

    def __init__(self):
        self.cleaned_data: List[CleanedRow] = []
        self.preprocessing_report: Optional[ProcessingReport] = None

    @property
    def is_data_ready(self) -> bool:
        return len(self.cleaned_data) > 0

    def load(self, rows: List[CleanedRow], report: ProcessingReport):
        """Replace the current upload with a new one"""
        self.cleaned_data = list(rows)
        self.preprocessing_report = report

    def clear(self):
        self.cleaned_data = []
        self.preprocessing_report = None
