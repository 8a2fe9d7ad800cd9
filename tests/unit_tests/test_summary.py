"""Unit tests for utils/summary.py."""

import logging

from core.models import FieldValue, RosterRecord, RunContext
from utils.summary import RunSummary


def record(person, organization, manager=None, indicator="NotIdentifiedAsManager"):
    return RosterRecord(
        person, "1900-01-01",
        manager_id=manager or FieldValue.present("boss@contoso.com"),
        organization=organization,
        supervisor_indicator=FieldValue.present(indicator),
        direct_report_count=FieldValue.present(0),
    )


def test_coverage_and_organization_sizes():
    context = RunContext()
    context.stats.manager_errors = 1
    records = [
        record("a@contoso.com", FieldValue.present("Sales"), indicator="Manager"),
        record("b@contoso.com", FieldValue.present("Sales")),
        record("c@contoso.com", FieldValue.present("Finance"), manager=FieldValue.error()),
        record("d@contoso.com", FieldValue.missing(), manager=FieldValue.missing()),
    ]

    summary = RunSummary.from_records(records, context)

    assert summary.total_records == 4
    assert summary.coverage == {'ManagerID': 50.0, 'Organization': 75.0}
    assert summary.supervisor_counts == {'NotIdentifiedAsManager': 3, 'Manager': 1}
    assert summary.organization_count == 2
    assert summary.largest_organizations == {'Sales': 2, 'Finance': 1}
    assert summary.organization_size_buckets['1'] == 1
    assert summary.organization_size_buckets['2-5'] == 1
    assert summary.error_counts['manager_errors'] == 1


def test_optional_columns_included_when_enabled():
    context = RunContext(include_optional=True)
    r = record("a@contoso.com", FieldValue.present("Sales"),
               manager=FieldValue.present("boss@contoso.com"))
    r.optional_properties = {'Title': FieldValue.present("Engineer")}

    summary = RunSummary.from_records([r], context)

    assert summary.coverage['Title'] == 100.0
    assert summary.coverage['Office'] == 0.0


def test_empty_roster_summary_logs(caplog):
    summary = RunSummary.from_records([], RunContext())

    with caplog.at_level(logging.INFO):
        summary.log(logging.getLogger("test"))

    assert summary.total_records == 0
    assert "Roster summary: 0 records" in caplog.text


def test_log_reports_total_lookup_errors(caplog):
    context = RunContext()
    context.stats.organization_errors = 2
    context.stats.manager_errors = 1
    summary = RunSummary.from_records([record("a@contoso.com", FieldValue.present("Sales"))],
                                      context)

    with caplog.at_level(logging.INFO):
        summary.log(logging.getLogger("test"))

    assert "Lookup errors: 3" in caplog.text
