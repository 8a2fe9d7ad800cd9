# =============================================================================
# utils/summary.py - End-of-run roster statistics
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from core.models import (
    MANAGER_ID, OPTIONAL_FIELDS, ORGANIZATION, SENTINELS, SUPERVISOR_INDICATOR,
    RosterRecord, RunContext, RunStats
)


SENTINEL_VALUES = list(SENTINELS.values())

ORGANIZATION_SIZE_BINS = [0, 1, 5, 10, 50, 100, float('inf')]
ORGANIZATION_SIZE_LABELS = ['1', '2-5', '6-10', '11-50', '51-100', '100+']


@dataclass
class RunSummary:
    """Coverage and error figures an operator uses to judge a re-run"""
    total_records: int = 0
    coverage: Dict[str, float] = field(default_factory=dict)
    supervisor_counts: Dict[str, int] = field(default_factory=dict)
    organization_count: int = 0
    median_organization_size: float = 0.0
    organization_size_buckets: Dict[str, int] = field(default_factory=dict)
    largest_organizations: Dict[str, int] = field(default_factory=dict)
    error_counts: Dict[str, int] = field(default_factory=dict)
    stats: RunStats = field(default_factory=RunStats)

    @classmethod
    def from_records(cls, records: List[RosterRecord], context: RunContext,
                     top_n: int = 5) -> 'RunSummary':
        summary = cls(error_counts=context.stats.error_counts(), stats=context.stats)
        if not records:
            return summary

        df = pd.DataFrame([record.to_row(context.include_optional) for record in records])
        summary.total_records = len(df)

        coverage_columns = [MANAGER_ID, ORGANIZATION]
        if context.include_optional:
            coverage_columns += OPTIONAL_FIELDS
        for column in coverage_columns:
            resolved = ~df[column].isin(SENTINEL_VALUES) & (df[column].str.strip() != '')
            summary.coverage[column] = round(float(resolved.mean()) * 100, 1)

        summary.supervisor_counts = {
            str(k): int(v) for k, v in df[SUPERVISOR_INDICATOR].value_counts().items()
        }

        organizations = df.loc[~df[ORGANIZATION].isin(SENTINEL_VALUES), ORGANIZATION]
        sizes = organizations.value_counts()
        if not sizes.empty:
            summary.organization_count = int(len(sizes))
            summary.median_organization_size = float(sizes.median())
            buckets = pd.cut(sizes, bins=ORGANIZATION_SIZE_BINS, labels=ORGANIZATION_SIZE_LABELS)
            summary.organization_size_buckets = {
                str(k): int(v) for k, v in buckets.value_counts(sort=False).items()
            }
            summary.largest_organizations = {
                str(k): int(v) for k, v in sizes.head(top_n).items()
            }

        return summary

    def log(self, logger: logging.Logger) -> None:
        """Log the summary in the same shape as the processing statistics"""
        logger.info(f"Roster summary: {self.total_records} records")
        logger.info(f"Lookup errors: {self.stats.total_errors}")
        logger.info(f"Error counts: {self.error_counts}")
        logger.info(f"Throttling retries: {self.stats.throttling_retries}")
        for column, percent in self.coverage.items():
            logger.info(f"Coverage {column}: {percent:.1f}%")
        logger.info(f"Supervisor indicators: {self.supervisor_counts}")
        logger.info(
            f"Organizations: {self.organization_count} "
            f"(median size {self.median_organization_size:.1f})"
        )
        logger.info(f"Organization size histogram: {self.organization_size_buckets}")
        logger.info(f"Largest organizations: {self.largest_organizations}")
