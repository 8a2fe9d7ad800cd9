"""Unit tests for core/models.py."""

import pytest

from core.models import (
    MANAGER_ID, NUMBER_OF_DIRECT_REPORTS, OPTIONAL_FIELDS, REQUIRED_FIELDS, SENTINELS,
    SUPERVISOR_INDICATOR, CandidateUser, FieldState, FieldValue, MailboxType, RosterRecord,
    roster_fieldnames
)


class TestFieldValue:
    """Tests for tagged field values and their sentinel serialization."""

    def test_sentinels_are_distinct(self):
        assert len(set(SENTINELS.values())) == len(SENTINELS)

    @pytest.mark.parametrize("state", [FieldState.MISSING, FieldState.ERROR, FieldState.PENDING])
    def test_sentinel_parses_back_to_its_state(self, state):
        assert FieldValue.from_csv(SENTINELS[state]).state is state

    @pytest.mark.parametrize("text", [
        "#MISSING#@contoso.com",
        "user#ERROR#@contoso.com",
        "x#PENDING#",
        " #MISSING#",
    ])
    def test_values_containing_sentinel_text_stay_present(self, text):
        value = FieldValue.from_csv(text)

        assert value.state is FieldState.PRESENT
        assert value.to_csv() == text

    def test_present_rejects_exact_sentinel(self):
        with pytest.raises(ValueError):
            FieldValue.present('#ERROR#')

    def test_from_optional_blank_is_missing(self):
        assert FieldValue.from_optional(None).state is FieldState.MISSING
        assert FieldValue.from_optional("   ").state is FieldState.MISSING
        assert FieldValue.from_optional(" Sales ").value == "Sales"


class TestRosterRecord:
    """Tests for RosterRecord row conversion."""

    def test_new_record_serializes_pending_supervisor_fields(self):
        record = RosterRecord(person_id="a@contoso.com", effective_date="1900-01-01")

        row = record.to_row(include_optional=False)

        assert list(row) == REQUIRED_FIELDS
        assert row[SUPERVISOR_INDICATOR] == SENTINELS[FieldState.PENDING]
        assert row[NUMBER_OF_DIRECT_REPORTS] == SENTINELS[FieldState.PENDING]
        assert not record.is_classified

    def test_optional_columns_default_to_missing(self):
        record = RosterRecord(person_id="a@contoso.com", effective_date="1900-01-01")

        row = record.to_row(include_optional=True)

        assert list(row) == REQUIRED_FIELDS + OPTIONAL_FIELDS
        assert all(row[c] == SENTINELS[FieldState.MISSING] for c in OPTIONAL_FIELDS)

    def test_from_row_reads_flag_and_sentinels(self):
        row = {
            'PersonID': 'b@contoso.com', 'EffectiveDate': '2026-10-19',
            'ManagerID': '#ERROR#', 'Organization': 'Finance',
            'LevelDesignation': 'NotAvailable', 'ManagerIsMissingFlag': 'True',
            'SupervisorIndicator': 'Manager', 'NumberOfDirectReports': '3',
        }

        record = RosterRecord.from_row(row, include_optional=False)

        assert record.manager_id.state is FieldState.ERROR
        assert record.manager_is_missing is True
        assert record.is_classified
        assert record.to_row(include_optional=False)[MANAGER_ID] == '#ERROR#'


class TestCandidateUser:
    """Tests for the candidate cache row format."""

    def test_cache_row_round_trip_keeps_proxies_and_type(self):
        candidate = CandidateUser(
            user_principal_name="a@corp.local",
            primary_address="A@contoso.com",
            proxy_addresses=["SMTP:A@contoso.com", "smtp:alias@contoso.com"],
            department="Sales",
            mailbox_type=MailboxType.MIGRATED,
        )

        restored = CandidateUser.from_cache_row(candidate.to_cache_row())

        assert restored == candidate
        assert restored.person_key == "a@contoso.com"

    def test_blank_cache_values_become_none(self):
        restored = CandidateUser.from_cache_row({
            'UserPrincipalName': 'x@corp.local', 'PrimarySmtpAddress': '',
            'MailboxType': 'bogus', 'AlreadyProcessed': 'False',
        })

        assert restored.primary_address is None
        assert restored.person_key is None
        assert restored.mailbox_type is MailboxType.UNKNOWN


def test_roster_fieldnames():
    assert roster_fieldnames(False) == REQUIRED_FIELDS
    assert roster_fieldnames(True)[-4:] == ['Office', 'City', 'Title', 'Country']
