"""
Shared fixtures for the roster builder tests.

The directory is faked in-process: FakeDirectory exposes the same four
operations as ActiveDirectoryClient and can be told to fail specific calls.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

THIS_DIR = Path(__file__).parent
TESTS_DIR_PARENT = (THIS_DIR / "..").resolve()

# add the project root to PYTHONPATH so core/, processors/ and utils/ import
sys.path.insert(0, str(TESTS_DIR_PARENT))

from core.errors import DirectoryError  # noqa: E402
from core.models import CandidateUser, MailboxType, RunContext  # noqa: E402
from core.retry import RetryPolicy  # noqa: E402


class FakeDirectory:
    """In-memory stand-in for ActiveDirectoryClient"""

    def __init__(self):
        self.users: Dict[str, Dict] = {}
        self.failures: Dict[tuple, List[Exception]] = {}
        self.calls: List[tuple] = []

    def add_user(self, name: str, manager: Optional[str] = None,
                 department: Optional[str] = 'Engineering',
                 address: Optional[str] = 'default', directory_department: Optional[str] = None,
                 **extra) -> str:
        """Register a user; returns its userPrincipalName"""
        upn = f"{name}@corp.local"
        self.users[upn] = {
            'address': f"{name}@contoso.com" if address == 'default' else address,
            'department': department,
            'directory_department': directory_department,
            'manager': f"{manager}@corp.local" if manager else None,
            **extra,
        }
        return upn

    def fail(self, operation: str, upn: str, *errors: Exception) -> None:
        """Queue errors raised by the next calls of operation for upn"""
        self.failures.setdefault((operation, upn), []).extend(errors)

    def _record(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        queued = self.failures.get((operation, key))
        if queued:
            raise queued.pop(0)

    def _resolve(self, key: str) -> str:
        if key in self.users:
            return key
        for upn, user in self.users.items():
            if user['address'] == key:
                return upn
        raise DirectoryError(f"User {key} not found in AD")

    def enumerate_mail_users(self) -> List[CandidateUser]:
        self._record('enumerate_mail_users', '*')
        return [
            CandidateUser(
                user_principal_name=upn,
                primary_address=user['address'],
                proxy_addresses=[f"SMTP:{user['address']}"] if user['address'] else ['smtp:alias@contoso.com'],
                department=user['department'],
                mailbox_type=MailboxType.ON_PREMISES,
                office=user.get('office'),
                city=user.get('city'),
                title=user.get('title'),
                country=user.get('country'),
            )
            for upn, user in self.users.items()
        ]

    def get_user(self, upn: str) -> Dict:
        self._record('get_user', upn)
        user = self.users[self._resolve(upn)]
        return {'user_principal_name': upn, 'email': user['address'],
                'department': user['directory_department'], 'title': user.get('title')}

    def get_manager(self, upn: str) -> Optional[str]:
        self._record('get_manager', upn)
        manager = self.users[self._resolve(upn)]['manager']
        return self.users[manager]['address'] if manager else None

    def get_direct_reports(self, key: str) -> List[str]:
        self._record('get_direct_reports', key)
        upn = self._resolve(key)
        return [user['address'] for user in self.users.values()
                if user['manager'] == upn and user['address']]


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def context():
    return RunContext(flush_threshold=2)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry_policy(context, sleeps):
    return RetryPolicy(max_attempts=3, delay_seconds=10, stats=context.stats, sleep=sleeps.append)


@pytest.fixture
def roster_path(tmp_path):
    return str(tmp_path / "org_roster.csv")


@pytest.fixture
def cache_path(tmp_path):
    return str(tmp_path / "candidate_users.csv")
