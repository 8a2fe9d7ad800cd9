# =============================================================================
# processors/supervisory.py - Classify supervisory tier from the reporting graph
# =============================================================================

from typing import List, Optional, Set

from core.ad_client import ActiveDirectoryClient
from core.base_processor import BaseRosterStage
from core.errors import DirectoryError
from core.models import FieldValue, RosterRecord, RunContext, SupervisorIndicator, identity_key
from core.reporting_graph import ReportingGraph
from core.retry import RetryPolicy


class SupervisoryClassificationPass(BaseRosterStage):
    """Second pass: fill supervisor indicator and direct-report count"""

    def __init__(self, context: RunContext, output_path: str, graph: ReportingGraph,
                 directory: Optional[ActiveDirectoryClient] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 verify_direct_reports: bool = False):
        super().__init__(context, output_path)
        self.graph = graph
        self.directory = directory
        self.retry_policy = retry_policy
        self.verify_direct_reports = verify_direct_reports and directory is not None
        self._roster_identities: Set[str] = set()

    def run(self) -> List[RosterRecord]:
        """Classify every pending record and rewrite the roster; returns all records"""
        if not self.roster_exists():
            self.logger.warning(f"No roster at {self.output_path}; nothing to classify")
            return []

        records, _ = self.read_roster()
        self._roster_identities = {identity_key(r.person_id) for r in records if r.person_id}
        updated_since_checkpoint = 0

        for record in records:
            if record.is_classified:
                continue

            self.classify(record)
            self.stats.records_classified += 1
            updated_since_checkpoint += 1

            if updated_since_checkpoint >= self.context.flush_threshold:
                self.checkpoint(records)
                updated_since_checkpoint = 0

        self.checkpoint(records)
        self.logger.info(
            f"Supervisory classification complete: {self.stats.records_classified} records classified"
        )
        return records

    def classify(self, record: RosterRecord) -> None:
        indicator, count = self.graph.classify(record.person_id)
        record.supervisor_indicator = FieldValue.present(indicator.value)
        record.direct_report_count = FieldValue.present(count)

        if self.verify_direct_reports and indicator is not SupervisorIndicator.NOT_MANAGER:
            self.check_direct_reports(record.person_id, count)

    def check_direct_reports(self, person_id: str, roster_count: int) -> None:
        """
        Compare the roster's report count with the directory's directReports.

        Only directory reports that are themselves roster persons are counted,
        so reports without a mailbox never register as a mismatch.
        """
        try:
            if self.retry_policy is not None:
                reports = self.retry_policy.call(
                    'get_direct_reports', self.directory.get_direct_reports, person_id
                )
            else:
                reports = self.directory.get_direct_reports(person_id)
        except DirectoryError as e:
            self.logger.warning(f"Could not verify direct reports of {person_id}: {e}")
            self.stats.direct_report_check_errors += 1
            return

        directory_count = len({identity_key(r) for r in reports} & self._roster_identities)
        if directory_count != roster_count:
            self.logger.warning(
                f"{person_id} has {roster_count} direct reports in the roster "
                f"but {directory_count} in the directory"
            )
            self.stats.direct_report_mismatches += 1

    def checkpoint(self, records: List[RosterRecord]) -> None:
        self.rewrite_roster(records)
        self.stats.checkpoints_written += 1
        self.logger.debug(f"Checkpoint {self.stats.checkpoints_written} written to {self.output_path}")
