# =============================================================================
# core/reporting_graph.py - Manager to direct-reports graph
# =============================================================================

from collections import defaultdict
from typing import Dict, Set, Tuple

from core.models import SupervisorIndicator, identity_key


class ReportingGraph:
    """
    Mapping of manager identity to the set of its direct reports.

    Keys and members are compared case-insensitively. Serialized sentinels
    (e.g. a missing manager) are stored like any other key; they never equal
    a real person identity so they never yield a report count.
    """

    def __init__(self):
        self._reports: Dict[str, Set[str]] = defaultdict(set)

    def add_edge(self, manager_id: str, report_id: str) -> None:
        self._reports[identity_key(manager_id)].add(identity_key(report_id))

    def is_manager(self, person_id: str) -> bool:
        return identity_key(person_id) in self._reports

    def reports_of(self, person_id: str) -> Set[str]:
        return set(self._reports.get(identity_key(person_id), ()))

    def direct_report_count(self, person_id: str) -> int:
        return len(self._reports.get(identity_key(person_id), ()))

    def manages_managers(self, person_id: str) -> bool:
        """True when at least one direct report is itself a manager"""
        return any(report in self._reports
                   for report in self._reports.get(identity_key(person_id), ()))

    def classify(self, person_id: str) -> Tuple[SupervisorIndicator, int]:
        """Supervisory tier and direct-report count for one person"""
        if not self.is_manager(person_id):
            return SupervisorIndicator.NOT_MANAGER, 0

        count = self.direct_report_count(person_id)
        if self.manages_managers(person_id):
            return SupervisorIndicator.MANAGER_OF_MANAGERS, count
        return SupervisorIndicator.MANAGER, count
