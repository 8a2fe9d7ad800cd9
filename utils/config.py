# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import os
from typing import Optional, List
from dotenv import load_dotenv

from core.errors import ConfigurationError


DATE_MODE_FULL_PULL = 'full-pull'
DATE_MODE_INCREMENTAL = 'incremental-delta'
DATE_MODES = (DATE_MODE_FULL_PULL, DATE_MODE_INCREMENTAL)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_number(name: str, default, cast=int):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


class Config:
    """Configuration management"""

    def __init__(self):
        load_dotenv()

    @property
    def ad_server(self) -> Optional[str]:
        return os.getenv("AD_SERVER")

    @property
    def ad_username(self) -> Optional[str]:
        return os.getenv("AD_USERNAME")

    @property
    def ad_password(self) -> Optional[str]:
        return os.getenv("AD_PASSWORD")

    @property
    def base_dn(self) -> Optional[str]:
        return os.getenv("BASE_DN")

    @property
    def roster_output(self) -> str:
        return os.getenv("ROSTER_OUTPUT", "org_roster.csv")

    @property
    def candidate_cache(self) -> str:
        return os.getenv("CANDIDATE_CACHE", "candidate_users.csv")

    @property
    def date_mode(self) -> str:
        mode = os.getenv("DATE_MODE", DATE_MODE_FULL_PULL).strip().lower()
        if mode not in DATE_MODES:
            raise ConfigurationError(f"DATE_MODE must be one of {DATE_MODES}, got {mode!r}")
        return mode

    @property
    def include_optional_properties(self) -> bool:
        return _env_bool("INCLUDE_OPTIONAL_PROPERTIES")

    @property
    def inject_faults(self) -> bool:
        return _env_bool("INJECT_FAULTS")

    @property
    def verify_direct_reports(self) -> bool:
        return _env_bool("VERIFY_DIRECT_REPORTS")

    @property
    def flush_threshold(self) -> int:
        threshold = _env_number("FLUSH_THRESHOLD", 250)
        if threshold < 1:
            raise ConfigurationError("FLUSH_THRESHOLD must be at least 1")
        return threshold

    @property
    def retry_attempts(self) -> int:
        attempts = _env_number("RETRY_ATTEMPTS", 5)
        if attempts < 1:
            raise ConfigurationError("RETRY_ATTEMPTS must be at least 1")
        return attempts

    @property
    def retry_delay_seconds(self) -> float:
        return _env_number("RETRY_DELAY_SECONDS", 10.0, cast=float)

    def validate_ad_config(self) -> bool:
        """Validate that all required AD configuration is present"""
        required = [self.ad_server, self.ad_username, self.ad_password, self.base_dn]
        return all(required)

    def get_missing_ad_vars(self) -> List[str]:
        """Get list of missing AD configuration variables"""
        vars_and_names = [
            (self.ad_server, "AD_SERVER"),
            (self.ad_username, "AD_USERNAME"),
            (self.ad_password, "AD_PASSWORD"),
            (self.base_dn, "BASE_DN")
        ]
        return [name for var, name in vars_and_names if not var]
