# =============================================================================
# core/roster_builder.py - Roster build workflow
# =============================================================================

import logging
from datetime import date
from typing import Callable

from core.ad_client import ActiveDirectoryClient
from core.models import RunContext
from core.retry import RetryPolicy
from processors.attribute_resolution import AttributeResolutionPass
from processors.reconciler import RosterReconciler
from processors.supervisory import SupervisoryClassificationPass
from utils.config import DATE_MODE_FULL_PULL
from utils.summary import RunSummary


class RosterBuilder:
    """Runs reconciliation, attribute resolution and classification in order"""

    def __init__(self, directory: ActiveDirectoryClient, context: RunContext,
                 output_path: str, cache_path: str, retry_policy: RetryPolicy,
                 date_mode: str = DATE_MODE_FULL_PULL,
                 verify_direct_reports: bool = False,
                 today: Callable[[], date] = date.today):
        self.directory = directory
        self.context = context
        self.output_path = output_path
        self.cache_path = cache_path
        self.retry_policy = retry_policy
        self.date_mode = date_mode
        self.verify_direct_reports = verify_direct_reports
        self._today = today
        self.logger = logging.getLogger(self.__class__.__name__)

    def build(self) -> RunSummary:
        """Main roster workflow; structural failures propagate to the caller"""
        self.logger.info(f"Starting roster build into {self.output_path}")

        try:
            reconciliation = RosterReconciler(
                self.directory, self.retry_policy, self.context,
                self.output_path, self.cache_path, self.date_mode, today=self._today
            ).run()

            AttributeResolutionPass(
                self.directory, self.retry_policy, self.context, self.output_path,
                reconciliation.candidates, reconciliation.graph,
                reconciliation.resolved_identities
            ).run()

            records = SupervisoryClassificationPass(
                self.context, self.output_path, reconciliation.graph,
                directory=self.directory, retry_policy=self.retry_policy,
                verify_direct_reports=self.verify_direct_reports
            ).run()

        except Exception as e:
            self.logger.error(f"Roster build failed: {e}")
            raise

        summary = RunSummary.from_records(records, self.context)
        summary.log(self.logger)
        return summary
