# =============================================================================
# core/ad_client.py - Active Directory client for roster lookups
# =============================================================================

import logging
from typing import Dict, Any, List, Optional
from ldap3 import Server, Connection, ALL, BASE, SUBTREE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from core.errors import DirectoryError
from core.models import CandidateUser, MailboxType


# msExchRecipientTypeDetails values
RECIPIENT_USER_MAILBOX = 1
RECIPIENT_REMOTE_USER_MAILBOX = 2147483648

# msExchRemoteRecipientType bit set once a mailbox has been moved to the cloud
REMOTE_RECIPIENT_MIGRATED = 0x4

MAIL_USER_FILTER = (
    "(&(objectCategory=person)(objectClass=user)"
    f"(|(msExchRecipientTypeDetails={RECIPIENT_USER_MAILBOX})"
    f"(msExchRecipientTypeDetails={RECIPIENT_REMOTE_USER_MAILBOX})))"
)

IDENTITY_ATTRIBUTES = ['proxyAddresses', 'mail', 'userPrincipalName']

ENUMERATION_ATTRIBUTES = [
    'userPrincipalName', 'proxyAddresses', 'mail', 'department',
    'physicalDeliveryOfficeName', 'l', 'title', 'co',
    'msExchRecipientTypeDetails', 'msExchRemoteRecipientType'
]

# Result descriptions that are not failures
_OK_RESULTS = ('success', 'noSuchObject')


def _first(attributes: Dict[str, Any], name: str) -> Optional[Any]:
    """Single value of an attribute, tolerating list-or-scalar shapes"""
    value = attributes.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _all(attributes: Dict[str, Any], name: str) -> List[str]:
    value = attributes.get(name)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [str(v) for v in value if str(v).strip()]


def _as_int(value: Optional[Any]) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def primary_smtp_address(proxy_addresses: List[str], mail: Optional[str] = None) -> Optional[str]:
    """
    Pick the primary address from proxyAddresses.

    The primary entry carries the uppercase "SMTP:" prefix; secondary
    entries use lowercase "smtp:". When proxy data exists without a primary
    entry the address is absent. With no proxy data the mail attribute is used.
    """
    if proxy_addresses:
        for address in proxy_addresses:
            if address.startswith('SMTP:'):
                return address[5:].strip() or None
        return None
    return mail.strip() if mail and mail.strip() else None


def _entry_identity(attributes: Dict[str, Any]) -> Optional[str]:
    """Primary SMTP address of an entry, falling back to mail then userPrincipalName"""
    address = primary_smtp_address(_all(attributes, 'proxyAddresses'), _first(attributes, 'mail'))
    return address or _first(attributes, 'mail') or _first(attributes, 'userPrincipalName')


def classify_mailbox(recipient_type_details: Optional[Any],
                     remote_recipient_type: Optional[Any]) -> MailboxType:
    """Classify a mailbox as on-premises, migrated or cloud-native"""
    details = _as_int(recipient_type_details)
    if details == RECIPIENT_USER_MAILBOX:
        return MailboxType.ON_PREMISES
    if details == RECIPIENT_REMOTE_USER_MAILBOX:
        if _as_int(remote_recipient_type) & REMOTE_RECIPIENT_MIGRATED:
            return MailboxType.MIGRATED
        return MailboxType.CLOUD_NATIVE
    return MailboxType.UNKNOWN


class ActiveDirectoryClient:
    """Active Directory client exposing the lookups the roster build needs"""

    def __init__(self, server_url: str, username: str, password: str, base_dn: str,
                 page_size: int = 500):
        self.server_url = server_url
        self.username = username
        self.password = password
        self.base_dn = base_dn
        self.page_size = page_size
        self.connection: Optional[Connection] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()

    def connect(self) -> bool:
        """Establish connection to Active Directory"""
        try:
            server = Server(self.server_url, get_info=ALL)
            self.connection = Connection(
                server,
                user=self.username,
                password=self.password,
                auto_bind=True
            )
            self.logger.info("Successfully connected to Active Directory")
            return True
        except Exception as e:
            self.logger.error(f"Failed to connect to AD: {e}")
            return False

    def disconnect(self) -> None:
        """Close Active Directory connection"""
        if self.connection:
            self.connection.unbind()
            self.connection = None
            self.logger.info("Disconnected from Active Directory")

    def enumerate_mail_users(self) -> List[CandidateUser]:
        """Enumerate every mailbox-bearing user under the base DN"""
        connection = self._require_connection()

        try:
            responses = connection.extend.standard.paged_search(
                search_base=self.base_dn,
                search_filter=MAIL_USER_FILTER,
                search_scope=SUBTREE,
                attributes=ENUMERATION_ATTRIBUTES,
                paged_size=self.page_size,
                generator=False
            )
        except LDAPException as e:
            raise DirectoryError(f"User enumeration failed: {e}") from e

        self._check_result(connection, "user enumeration")

        candidates = []
        for response in responses or []:
            if response.get('type') != 'searchResEntry':
                continue
            candidates.append(self._to_candidate(response.get('attributes', {})))

        self.logger.info(f"Enumerated {len(candidates)} mailbox users from AD")
        return candidates

    def get_user(self, user_principal_name: str) -> Dict[str, Any]:
        """Fetch basic attributes of one user"""
        attributes = self._find_user(
            user_principal_name,
            ['userPrincipalName', 'mail', 'department', 'title']
        )
        return {
            'user_principal_name': _first(attributes, 'userPrincipalName') or user_principal_name,
            'email': _first(attributes, 'mail'),
            'department': _first(attributes, 'department'),
            'title': _first(attributes, 'title'),
        }

    def get_manager(self, user_principal_name: str) -> Optional[str]:
        """
        Fetch the addressable identity of a user's manager.

        Returns None when the user has no manager set. A manager entry that
        cannot be read or carries no address is a DirectoryError.
        """
        attributes = self._find_user(user_principal_name, ['manager'])
        manager_dn = _first(attributes, 'manager')
        if not manager_dn:
            return None

        manager = self._read_entry(str(manager_dn), IDENTITY_ATTRIBUTES)
        if manager is None:
            raise DirectoryError(f"Manager {manager_dn} of {user_principal_name} not found")

        address = _entry_identity(manager)
        if not address:
            raise DirectoryError(
                f"Manager {manager_dn} of {user_principal_name} has no addressable identity"
            )
        return address

    def get_direct_reports(self, user_principal_name: str) -> List[str]:
        """
        Fetch the addressable identities of a user's direct reports.

        Report entries that no longer exist or carry no address are skipped.
        """
        attributes = self._find_user(user_principal_name, ['directReports'])
        reports = []
        for report_dn in _all(attributes, 'directReports'):
            report = self._read_entry(report_dn, IDENTITY_ATTRIBUTES)
            address = _entry_identity(report) if report is not None else None
            if address:
                reports.append(address)
            else:
                self.logger.debug(f"Skipping direct report {report_dn}: no addressable identity")
        return reports

    def _find_user(self, user_principal_name: str, attributes: List[str]) -> Dict[str, Any]:
        """Search a user by userPrincipalName or mail; a missing user is a permanent error"""
        connection = self._require_connection()
        key = escape_filter_chars(user_principal_name)
        search_filter = f"(|(userPrincipalName={key})(mail={key}))"

        try:
            connection.search(
                search_base=self.base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=attributes
            )
        except LDAPException as e:
            raise DirectoryError(f"Lookup of {user_principal_name} failed: {e}") from e

        self._check_result(connection, f"lookup of {user_principal_name}")

        entries = [r for r in connection.response or [] if r.get('type') == 'searchResEntry']
        if not entries:
            raise DirectoryError(f"User {user_principal_name} not found in AD")
        if len(entries) > 1:
            self.logger.warning(f"Multiple users found for {user_principal_name}, using first match")

        return entries[0].get('attributes', {})

    def _read_entry(self, dn: str, attributes: List[str]) -> Optional[Dict[str, Any]]:
        """Read a single entry by DN"""
        connection = self._require_connection()
        try:
            connection.search(
                search_base=dn,
                search_filter='(objectClass=*)',
                search_scope=BASE,
                attributes=attributes
            )
        except LDAPException as e:
            raise DirectoryError(f"Read of {dn} failed: {e}") from e

        self._check_result(connection, f"read of {dn}")

        entries = [r for r in connection.response or [] if r.get('type') == 'searchResEntry']
        return entries[0].get('attributes', {}) if entries else None

    def _require_connection(self) -> Connection:
        if not self.connection:
            raise DirectoryError("Not connected to Active Directory")
        return self.connection

    def _check_result(self, connection: Connection, operation: str) -> None:
        """Turn a non-success LDAP result into a DirectoryError"""
        result = connection.result or {}
        description = result.get('description', 'success')
        if description in _OK_RESULTS:
            return
        message = result.get('message', '')
        raise DirectoryError(f"AD {operation} returned {description}: {message}".strip())

    def _to_candidate(self, attributes: Dict[str, Any]) -> CandidateUser:
        proxies = _all(attributes, 'proxyAddresses')
        return CandidateUser(
            user_principal_name=str(_first(attributes, 'userPrincipalName') or ''),
            primary_address=primary_smtp_address(proxies, _first(attributes, 'mail')),
            proxy_addresses=proxies,
            department=_first(attributes, 'department'),
            mailbox_type=classify_mailbox(
                _first(attributes, 'msExchRecipientTypeDetails'),
                _first(attributes, 'msExchRemoteRecipientType')
            ),
            office=_first(attributes, 'physicalDeliveryOfficeName'),
            city=_first(attributes, 'l'),
            title=_first(attributes, 'title'),
            country=_first(attributes, 'co'),
        )
