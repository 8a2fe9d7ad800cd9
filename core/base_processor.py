# =============================================================================
# core/base_processor.py - Abstract roster build stage
# =============================================================================

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Tuple
import logging

from core.models import RosterRecord, RunContext
from utils.csv_utils import CSVHandler


class BaseRosterStage(ABC):
    """Abstract base class for the stages of a roster build"""

    def __init__(self, context: RunContext, output_path: str):
        self.context = context
        self.output_path = output_path
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def stats(self):
        return self.context.stats

    @abstractmethod
    def run(self) -> Any:
        """Execute the stage"""
        pass

    def roster_exists(self) -> bool:
        """True when the roster file exists and has at least a header"""
        path = Path(self.output_path)
        return path.exists() and path.stat().st_size > 0

    def read_roster(self) -> Tuple[List[RosterRecord], List[str]]:
        """Load every roster row as a RosterRecord"""
        rows, headers = CSVHandler.read_csv(self.output_path)
        records = [RosterRecord.from_row(row, self.context.include_optional) for row in rows]
        return records, headers

    def rewrite_roster(self, records: List[RosterRecord]) -> None:
        """Replace the roster file with the given records"""
        rows = [record.to_row(self.context.include_optional) for record in records]
        CSVHandler.write_csv(rows, self.output_path, self.context.fieldnames)
