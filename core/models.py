# =============================================================================
# core/models.py - Roster data models
# =============================================================================

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from enum import Enum


# Output columns, in file order
PERSON_ID = 'PersonID'
EFFECTIVE_DATE = 'EffectiveDate'
MANAGER_ID = 'ManagerID'
ORGANIZATION = 'Organization'
LEVEL_DESIGNATION = 'LevelDesignation'
MANAGER_IS_MISSING_FLAG = 'ManagerIsMissingFlag'
SUPERVISOR_INDICATOR = 'SupervisorIndicator'
NUMBER_OF_DIRECT_REPORTS = 'NumberOfDirectReports'

REQUIRED_FIELDS = [
    PERSON_ID, EFFECTIVE_DATE, MANAGER_ID, ORGANIZATION, LEVEL_DESIGNATION,
    MANAGER_IS_MISSING_FLAG, SUPERVISOR_INDICATOR, NUMBER_OF_DIRECT_REPORTS
]

# Optional column -> CandidateUser attribute
OPTIONAL_PROPERTY_COLUMNS = {
    'Office': 'office',
    'City': 'city',
    'Title': 'title',
    'Country': 'country',
}
OPTIONAL_FIELDS = list(OPTIONAL_PROPERTY_COLUMNS)

# Never resolved by this tool; downstream fills it in
LEVEL_DESIGNATION_PLACEHOLDER = 'NotAvailable'

# Effective date used for the first-ever full pull
FULL_PULL_EFFECTIVE_DATE = '1900-01-01'


def roster_fieldnames(include_optional: bool) -> List[str]:
    """Columns of the roster file for the given configuration"""
    if include_optional:
        return REQUIRED_FIELDS + OPTIONAL_FIELDS
    return list(REQUIRED_FIELDS)


class FieldState(Enum):
    """Tag carried by every resolvable roster field"""
    PRESENT = "present"
    MISSING = "missing"
    ERROR = "error"
    PENDING = "pending"


# Serialized form of each non-present state. Parsed back by exact match only.
SENTINELS = {
    FieldState.MISSING: '#MISSING#',
    FieldState.ERROR: '#ERROR#',
    FieldState.PENDING: '#PENDING#',
}
_STATE_BY_SENTINEL = {text: state for state, text in SENTINELS.items()}


def is_sentinel(text: str) -> bool:
    return text in _STATE_BY_SENTINEL


@dataclass(frozen=True)
class FieldValue:
    """A roster field value tagged as present, missing, errored or pending"""
    state: FieldState
    value: str = ""

    @classmethod
    def present(cls, value: Any) -> 'FieldValue':
        text = str(value)
        if is_sentinel(text):
            raise ValueError(f"Value {text!r} collides with a reserved sentinel")
        return cls(FieldState.PRESENT, text)

    @classmethod
    def missing(cls) -> 'FieldValue':
        return cls(FieldState.MISSING)

    @classmethod
    def error(cls) -> 'FieldValue':
        return cls(FieldState.ERROR)

    @classmethod
    def pending(cls) -> 'FieldValue':
        return cls(FieldState.PENDING)

    @classmethod
    def from_optional(cls, value: Optional[Any]) -> 'FieldValue':
        """Present when the value carries text, missing otherwise"""
        if value is None or not str(value).strip():
            return cls.missing()
        return cls.present(str(value).strip())

    @classmethod
    def from_csv(cls, text: Optional[str]) -> 'FieldValue':
        text = text if text is not None else ''
        state = _STATE_BY_SENTINEL.get(text)
        if state is not None:
            return cls(state)
        return cls(FieldState.PRESENT, text)

    def to_csv(self) -> str:
        if self.state is FieldState.PRESENT:
            return self.value
        return SENTINELS[self.state]

    @property
    def is_present(self) -> bool:
        return self.state is FieldState.PRESENT

    @property
    def is_pending(self) -> bool:
        return self.state is FieldState.PENDING


class MailboxType(Enum):
    """Where a user's mailbox lives"""
    ON_PREMISES = "OnPremises"
    MIGRATED = "Migrated"
    CLOUD_NATIVE = "CloudNative"
    UNKNOWN = "Unknown"


class SupervisorIndicator(Enum):
    """Supervisory tier derived from the reporting graph"""
    NOT_MANAGER = "NotIdentifiedAsManager"
    MANAGER = "Manager"
    MANAGER_OF_MANAGERS = "Manager+"


# Candidate cache columns
CACHE_FIELDS = [
    'UserPrincipalName', 'ProxyAddresses', 'Department', 'MailboxType',
    'Office', 'City', 'Title', 'Country', 'PrimarySmtpAddress', 'AlreadyProcessed'
]
PROXY_ADDRESS_SEPARATOR = ';'


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class CandidateUser:
    """A directory principal considered for the roster"""
    user_principal_name: str
    primary_address: Optional[str] = None
    proxy_addresses: List[str] = field(default_factory=list)
    department: Optional[str] = None
    mailbox_type: MailboxType = MailboxType.UNKNOWN
    office: Optional[str] = None
    city: Optional[str] = None
    title: Optional[str] = None
    country: Optional[str] = None
    already_processed: bool = False

    @property
    def person_key(self) -> Optional[str]:
        """Case-insensitive key used to match roster rows"""
        return identity_key(self.primary_address) if self.primary_address else None

    def to_cache_row(self) -> Dict[str, str]:
        return {
            'UserPrincipalName': self.user_principal_name,
            'ProxyAddresses': PROXY_ADDRESS_SEPARATOR.join(self.proxy_addresses),
            'Department': self.department or '',
            'MailboxType': self.mailbox_type.value,
            'Office': self.office or '',
            'City': self.city or '',
            'Title': self.title or '',
            'Country': self.country or '',
            'PrimarySmtpAddress': self.primary_address or '',
            'AlreadyProcessed': str(self.already_processed),
        }

    @classmethod
    def from_cache_row(cls, row: Dict[str, Any]) -> 'CandidateUser':
        proxies = row.get('ProxyAddresses') or ''
        try:
            mailbox_type = MailboxType(row.get('MailboxType') or MailboxType.UNKNOWN.value)
        except ValueError:
            mailbox_type = MailboxType.UNKNOWN

        return cls(
            user_principal_name=(row.get('UserPrincipalName') or '').strip(),
            primary_address=_blank_to_none(row.get('PrimarySmtpAddress')),
            proxy_addresses=[p for p in proxies.split(PROXY_ADDRESS_SEPARATOR) if p],
            department=_blank_to_none(row.get('Department')),
            mailbox_type=mailbox_type,
            office=_blank_to_none(row.get('Office')),
            city=_blank_to_none(row.get('City')),
            title=_blank_to_none(row.get('Title')),
            country=_blank_to_none(row.get('Country')),
            already_processed=parse_bool(row.get('AlreadyProcessed')),
        )


def identity_key(address: str) -> str:
    return address.strip().casefold()


def parse_bool(value: Optional[Any]) -> bool:
    return str(value).strip().lower() in ('true', '1', 'yes')


@dataclass
class RosterRecord:
    """One roster row"""
    person_id: str
    effective_date: str
    manager_id: FieldValue = field(default_factory=FieldValue.pending)
    organization: FieldValue = field(default_factory=FieldValue.pending)
    level_designation: str = LEVEL_DESIGNATION_PLACEHOLDER
    manager_is_missing: bool = True
    supervisor_indicator: FieldValue = field(default_factory=FieldValue.pending)
    direct_report_count: FieldValue = field(default_factory=FieldValue.pending)
    optional_properties: Dict[str, FieldValue] = field(default_factory=dict)

    @property
    def is_classified(self) -> bool:
        return not self.supervisor_indicator.is_pending

    def to_row(self, include_optional: bool) -> Dict[str, str]:
        row = {
            PERSON_ID: self.person_id,
            EFFECTIVE_DATE: self.effective_date,
            MANAGER_ID: self.manager_id.to_csv(),
            ORGANIZATION: self.organization.to_csv(),
            LEVEL_DESIGNATION: self.level_designation,
            MANAGER_IS_MISSING_FLAG: str(self.manager_is_missing),
            SUPERVISOR_INDICATOR: self.supervisor_indicator.to_csv(),
            NUMBER_OF_DIRECT_REPORTS: self.direct_report_count.to_csv(),
        }
        if include_optional:
            for column in OPTIONAL_FIELDS:
                row[column] = self.optional_properties.get(column, FieldValue.missing()).to_csv()
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any], include_optional: bool) -> 'RosterRecord':
        optional_properties = {}
        if include_optional:
            optional_properties = {
                column: FieldValue.from_csv(row.get(column)) for column in OPTIONAL_FIELDS
            }

        return cls(
            person_id=(row.get(PERSON_ID) or '').strip(),
            effective_date=row.get(EFFECTIVE_DATE) or '',
            manager_id=FieldValue.from_csv(row.get(MANAGER_ID)),
            organization=FieldValue.from_csv(row.get(ORGANIZATION)),
            level_designation=row.get(LEVEL_DESIGNATION) or LEVEL_DESIGNATION_PLACEHOLDER,
            manager_is_missing=parse_bool(row.get(MANAGER_IS_MISSING_FLAG)),
            supervisor_indicator=FieldValue.from_csv(row.get(SUPERVISOR_INDICATOR)),
            direct_report_count=FieldValue.from_csv(row.get(NUMBER_OF_DIRECT_REPORTS)),
            optional_properties=optional_properties,
        )


@dataclass
class RunStats:
    """Counters accumulated over a single roster run"""
    candidates_total: int = 0
    candidates_without_address: int = 0
    already_resolved: int = 0
    duplicate_identities: int = 0
    records_written: int = 0
    batches_flushed: int = 0
    organization_errors: int = 0
    manager_errors: int = 0
    missing_managers: int = 0
    throttling_retries: int = 0
    records_classified: int = 0
    checkpoints_written: int = 0
    direct_report_mismatches: int = 0
    direct_report_check_errors: int = 0

    @property
    def total_errors(self) -> int:
        return self.organization_errors + self.manager_errors

    def error_counts(self) -> Dict[str, int]:
        """Per-category error tallies for the run summary"""
        return {
            'organization_errors': self.organization_errors,
            'manager_errors': self.manager_errors,
            'missing_managers': self.missing_managers,
            'candidates_without_address': self.candidates_without_address,
            'duplicate_identities': self.duplicate_identities,
            'direct_report_mismatches': self.direct_report_mismatches,
            'direct_report_check_errors': self.direct_report_check_errors,
        }


@dataclass
class RunContext:
    """Run-wide settings and counters threaded through every stage"""
    include_optional: bool = False
    flush_threshold: int = 250
    effective_date: str = ""
    stats: RunStats = field(default_factory=RunStats)

    @property
    def fieldnames(self) -> List[str]:
        return roster_fieldnames(self.include_optional)
