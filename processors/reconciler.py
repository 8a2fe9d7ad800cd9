# =============================================================================
# processors/reconciler.py - Match prior roster output against candidates
# =============================================================================

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, List, Set

from core.ad_client import ActiveDirectoryClient
from core.base_processor import BaseRosterStage
from core.errors import DirectoryError, EnumerationError, SchemaMismatchError
from core.models import (
    CACHE_FIELDS, FULL_PULL_EFFECTIVE_DATE, CandidateUser, RosterRecord, RunContext,
    identity_key
)
from core.reporting_graph import ReportingGraph
from core.retry import RetryPolicy
from utils.config import DATE_MODE_FULL_PULL, DATE_MODE_INCREMENTAL
from utils.csv_utils import CSVHandler


@dataclass
class ReconciliationResult:
    """Candidates to process plus the state recovered from the existing roster"""
    candidates: List[CandidateUser]
    graph: ReportingGraph
    resolved_identities: Set[str] = field(default_factory=set)

    @property
    def pending(self) -> List[CandidateUser]:
        return [c for c in self.candidates if not c.already_processed]


def validate_roster_schema(path: str, headers: List[str], expected: List[str]) -> None:
    """Raise SchemaMismatchError unless headers equal the expected columns exactly"""
    if headers == expected:
        return

    missing = [column for column in expected if column not in headers]
    extra = [column for column in headers if column not in expected]
    raise SchemaMismatchError(path, missing, extra, order_differs=not missing and not extra)


class RosterReconciler(BaseRosterStage):
    """Builds the candidate set and recovers progress from a previous run"""

    def __init__(self, directory: ActiveDirectoryClient, retry_policy: RetryPolicy,
                 context: RunContext, output_path: str, cache_path: str,
                 date_mode: str = DATE_MODE_FULL_PULL,
                 today: Callable[[], date] = date.today):
        super().__init__(context, output_path)
        self.directory = directory
        self.retry_policy = retry_policy
        self.cache_path = cache_path
        self.date_mode = date_mode
        self._today = today

    def run(self) -> ReconciliationResult:
        candidates = self.load_candidates()
        graph = ReportingGraph()
        existing: List[RosterRecord] = []

        if self.roster_exists():
            existing = self.load_existing_roster()
            self.logger.info(f"Found {len(existing)} existing records in {self.output_path}")

        resolved = self.mark_resolved(candidates, existing, graph)
        self.context.effective_date = self.determine_effective_date(existing)

        pending = sum(1 for c in candidates if not c.already_processed)
        self.logger.info(
            f"Reconciliation complete: {len(candidates)} candidates, "
            f"{self.stats.already_resolved} already resolved, {pending} pending, "
            f"effective date {self.context.effective_date}"
        )
        return ReconciliationResult(candidates=candidates, graph=graph, resolved_identities=resolved)

    def load_candidates(self) -> List[CandidateUser]:
        """Load the candidate cache, or enumerate the directory and write the cache"""
        from_cache = Path(self.cache_path).exists()
        if from_cache:
            rows, _ = CSVHandler.read_csv(self.cache_path)
            candidates = [CandidateUser.from_cache_row(row) for row in rows]
            self.logger.info(f"Loaded {len(candidates)} candidates from cache {self.cache_path}")
        else:
            candidates = self.enumerate_candidates()

        usable = []
        for candidate in candidates:
            if candidate.primary_address:
                usable.append(candidate)
            else:
                self.logger.warning(
                    f"Skipping {candidate.user_principal_name}: no primary SMTP address"
                )
                self.stats.candidates_without_address += 1

        if self.stats.candidates_without_address:
            self.logger.warning(
                f"Dropped {self.stats.candidates_without_address} candidates without a primary address"
            )

        if not usable:
            self.logger.error("No candidate users with a primary address; nothing to build")
            raise EnumerationError("Candidate set is empty")

        # Only a usable enumeration is cached; an empty one is retried next run
        if not from_cache:
            CSVHandler.write_csv(
                [c.to_cache_row() for c in candidates], self.cache_path, CACHE_FIELDS
            )
            self.logger.info(f"Cached {len(candidates)} candidates to {self.cache_path}")

        self.stats.candidates_total = len(usable)
        return usable

    def enumerate_candidates(self) -> List[CandidateUser]:
        try:
            return self.retry_policy.call(
                'enumerate_mail_users', self.directory.enumerate_mail_users
            )
        except DirectoryError as e:
            self.logger.error(f"Directory enumeration failed: {e}")
            raise EnumerationError(f"Directory enumeration failed: {e}") from e

    def load_existing_roster(self) -> List[RosterRecord]:
        """Validate the existing roster's columns and load its records"""
        records, headers = self.read_roster()
        try:
            validate_roster_schema(self.output_path, headers, self.context.fieldnames)
        except SchemaMismatchError as e:
            self.logger.error(str(e))
            raise
        return records

    def mark_resolved(self, candidates: List[CandidateUser], existing: List[RosterRecord],
                      graph: ReportingGraph) -> Set[str]:
        """Flag candidates already in the roster and replay its manager edges"""
        resolved = set()
        for record in existing:
            if not record.person_id:
                continue
            resolved.add(identity_key(record.person_id))
            graph.add_edge(record.manager_id.to_csv(), record.person_id)

        for candidate in candidates:
            if candidate.person_key in resolved:
                candidate.already_processed = True
                self.stats.already_resolved += 1

        return resolved

    def determine_effective_date(self, existing: List[RosterRecord]) -> str:
        if existing and existing[0].effective_date:
            return existing[0].effective_date
        if self.date_mode == DATE_MODE_INCREMENTAL:
            return self._today().isoformat()
        return FULL_PULL_EFFECTIVE_DATE
