# =============================================================================
# processors/attribute_resolution.py - Resolve organization and manager
# =============================================================================

from typing import List, Optional, Set

from core.ad_client import ActiveDirectoryClient
from core.base_processor import BaseRosterStage
from core.errors import DirectoryError
from core.models import (
    OPTIONAL_PROPERTY_COLUMNS, CandidateUser, FieldValue, RosterRecord, RunContext
)
from core.reporting_graph import ReportingGraph
from core.retry import RetryPolicy
from utils.csv_utils import CSVHandler


class AttributeResolutionPass(BaseRosterStage):
    """
    First pass of the roster build.

    Visits every pending candidate in candidate order, resolves its
    organization and manager through the directory, grows the reporting
    graph and appends finished records to the roster in batches. Supervisor
    fields stay pending until the classification pass.
    """

    def __init__(self, directory: ActiveDirectoryClient, retry_policy: RetryPolicy,
                 context: RunContext, output_path: str, candidates: List[CandidateUser],
                 graph: ReportingGraph, resolved_identities: Optional[Set[str]] = None):
        super().__init__(context, output_path)
        self.directory = directory
        self.retry_policy = retry_policy
        self.candidates = candidates
        self.graph = graph
        self.seen_identities: Set[str] = set(resolved_identities or ())
        self._batch: List[RosterRecord] = []

    def run(self) -> int:
        """Resolve all pending candidates; returns the number of records written"""
        written_before = self.stats.records_written
        pending = [c for c in self.candidates if not c.already_processed]
        self.logger.info(f"Resolving attributes for {len(pending)} pending candidates")

        for candidate in pending:
            key = candidate.person_key
            if key is None:
                continue
            if key in self.seen_identities:
                self.logger.warning(f"Duplicate identity {candidate.primary_address} skipped")
                self.stats.duplicate_identities += 1
                continue
            self.seen_identities.add(key)

            self._batch.append(self.resolve_candidate(candidate))
            if len(self._batch) >= self.context.flush_threshold:
                self.flush()

        self.flush()

        written = self.stats.records_written - written_before
        self.logger.info(f"Attribute resolution complete: {written} records written")
        return written

    def resolve_candidate(self, candidate: CandidateUser) -> RosterRecord:
        """Build one roster record with supervisor fields left pending"""
        record = RosterRecord(
            person_id=candidate.primary_address,
            effective_date=self.context.effective_date,
        )

        if self.context.include_optional:
            record.optional_properties = {
                column: self._optional_value(candidate, attribute)
                for column, attribute in OPTIONAL_PROPERTY_COLUMNS.items()
            }

        record.organization = self.resolve_organization(candidate)
        self.resolve_manager(candidate, record)
        return record

    def resolve_organization(self, candidate: CandidateUser) -> FieldValue:
        upn = candidate.user_principal_name
        try:
            if candidate.department:
                return FieldValue.present(candidate.department)

            user = self.retry_policy.call('get_user', self.directory.get_user, upn)
            return FieldValue.from_optional(user.get('department'))

        except (DirectoryError, ValueError) as e:
            self.logger.error(f"Organization lookup failed for {upn}: {e}")
            self.stats.organization_errors += 1
            return FieldValue.error()

    def resolve_manager(self, candidate: CandidateUser, record: RosterRecord) -> None:
        upn = candidate.user_principal_name
        try:
            manager = self.retry_policy.call('get_manager', self.directory.get_manager, upn)
            if not manager:
                self.logger.debug(f"No manager set for {upn}")
                record.manager_id = FieldValue.missing()
                record.manager_is_missing = True
                self.stats.missing_managers += 1
                return

            record.manager_id = FieldValue.present(manager)
            record.manager_is_missing = False
            self.graph.add_edge(manager, record.person_id)

        except (DirectoryError, ValueError) as e:
            self.logger.error(f"Manager lookup failed for {upn}: {e}")
            record.manager_id = FieldValue.error()
            record.manager_is_missing = True
            self.stats.manager_errors += 1

    def flush(self) -> None:
        """Append the current batch to the roster file"""
        if not self._batch:
            return

        rows = [record.to_row(self.context.include_optional) for record in self._batch]
        CSVHandler.append_rows(rows, self.output_path, self.context.fieldnames)

        self.stats.records_written += len(rows)
        self.stats.batches_flushed += 1
        self.logger.info(
            f"Flushed {len(rows)} records to {self.output_path} "
            f"({self.stats.records_written} written this run)"
        )
        self._batch = []

    def _optional_value(self, candidate: CandidateUser, attribute: str) -> FieldValue:
        try:
            return FieldValue.from_optional(getattr(candidate, attribute))
        except ValueError as e:
            self.logger.warning(f"{attribute} of {candidate.user_principal_name} rejected: {e}")
            return FieldValue.error()
