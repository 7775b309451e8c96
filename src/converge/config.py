"""Configuration management with validation.

All timing knobs of the reconciliation core are validated at load time so
that a misconfigured poller fails fast instead of spinning or never waiting.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_CREATE_TIMEOUT_SECONDS = 1800
DEFAULT_UPDATE_TIMEOUT_SECONDS = 1800
DEFAULT_DELETE_TIMEOUT_SECONDS = 600
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 86400

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
MIN_POLL_INTERVAL_SECONDS = 0.1
MAX_POLL_INTERVAL_SECONDS = 3600.0

DEFAULT_POLL_DELAY_SECONDS = 0.0
DEFAULT_POLL_JITTER = 0.1
MAX_POLL_JITTER = 0.5

DEFAULT_MAX_CONSECUTIVE_TRANSIENT_ERRORS = 3
MAX_CONSECUTIVE_TRANSIENT_ERRORS_LIMIT = 20

DEFAULT_MAX_CALL_ATTEMPTS = 3
MAX_CALL_ATTEMPTS_LIMIT = 10
DEFAULT_RETRY_BACKOFF_BASE_SECONDS = 2.0
RETRY_BACKOFF_MAX_SECONDS = 60.0

DEFAULT_CALL_TIMEOUT_SECONDS = 60
DEFAULT_MAX_CONCURRENT_RECONCILES = 4

# Security constraints - enforced limits to prevent abuse
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file
MAX_SPEC_DOCUMENTS_PER_FILE = 100


@dataclass(frozen=True)
class Config:
    """Runtime configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    specs_dir: Path = field(default_factory=lambda: Path("/specs"))

    # Per-operation timeouts (create/update typically longer than delete)
    create_timeout_seconds: int = DEFAULT_CREATE_TIMEOUT_SECONDS
    update_timeout_seconds: int = DEFAULT_UPDATE_TIMEOUT_SECONDS
    delete_timeout_seconds: int = DEFAULT_DELETE_TIMEOUT_SECONDS

    # Poller
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_delay_seconds: float = DEFAULT_POLL_DELAY_SECONDS
    poll_jitter: float = DEFAULT_POLL_JITTER
    max_consecutive_transient_errors: int = DEFAULT_MAX_CONSECUTIVE_TRANSIENT_ERRORS

    # Initiating-call retries
    max_call_attempts: int = DEFAULT_MAX_CALL_ATTEMPTS
    retry_backoff_base_seconds: float = DEFAULT_RETRY_BACKOFF_BASE_SECONDS
    call_timeout_seconds: int = DEFAULT_CALL_TIMEOUT_SECONDS

    max_concurrent_reconciles: int = DEFAULT_MAX_CONCURRENT_RECONCILES

    # Remote targets
    aws_region: str | None = None
    azure_subscription_id: str | None = None

    # Behavior
    dry_run: bool = False
    log_json: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        for name, value in (
            ("CREATE_TIMEOUT", self.create_timeout_seconds),
            ("UPDATE_TIMEOUT", self.update_timeout_seconds),
            ("DELETE_TIMEOUT", self.delete_timeout_seconds),
        ):
            if not (MIN_TIMEOUT_SECONDS <= value <= MAX_TIMEOUT_SECONDS):
                errors.append(
                    f"{name} must be between {MIN_TIMEOUT_SECONDS} "
                    f"and {MAX_TIMEOUT_SECONDS} seconds"
                )

        interval = self.poll_interval_seconds
        if not (MIN_POLL_INTERVAL_SECONDS <= interval <= MAX_POLL_INTERVAL_SECONDS):
            errors.append(
                f"POLL_INTERVAL must be between {MIN_POLL_INTERVAL_SECONDS} "
                f"and {MAX_POLL_INTERVAL_SECONDS} seconds"
            )

        if self.poll_delay_seconds < 0:
            errors.append("POLL_DELAY cannot be negative")

        if not (0 <= self.poll_jitter <= MAX_POLL_JITTER):
            errors.append(f"POLL_JITTER must be between 0 and {MAX_POLL_JITTER}")

        max_errors = self.max_consecutive_transient_errors
        if not (1 <= max_errors <= MAX_CONSECUTIVE_TRANSIENT_ERRORS_LIMIT):
            errors.append(
                "MAX_CONSECUTIVE_TRANSIENT_ERRORS must be between 1 "
                f"and {MAX_CONSECUTIVE_TRANSIENT_ERRORS_LIMIT}"
            )

        if not (1 <= self.max_call_attempts <= MAX_CALL_ATTEMPTS_LIMIT):
            errors.append(f"MAX_CALL_ATTEMPTS must be between 1 and {MAX_CALL_ATTEMPTS_LIMIT}")

        if self.retry_backoff_base_seconds < 0:
            errors.append("RETRY_BACKOFF_BASE cannot be negative")

        if self.call_timeout_seconds < 1:
            errors.append("CALL_TIMEOUT must be at least 1 second")

        if self.max_concurrent_reconciles < 1:
            errors.append("MAX_CONCURRENT_RECONCILES must be at least 1")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    def timeout_for(self, operation: str) -> int:
        """Default timeout for a lifecycle operation name."""
        match operation:
            case "create":
                return self.create_timeout_seconds
            case "update":
                return self.update_timeout_seconds
            case "delete":
                return self.delete_timeout_seconds
            case _:
                return self.call_timeout_seconds

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            SPECS_DIR: Path to YAML resource specs (default: /specs)
            CREATE_TIMEOUT: Create convergence timeout in seconds (default: 1800)
            UPDATE_TIMEOUT: Update convergence timeout in seconds (default: 1800)
            DELETE_TIMEOUT: Delete convergence timeout in seconds (default: 600)
            POLL_INTERVAL: Seconds between status checks (default: 10)
            POLL_DELAY: Seconds to wait before the first status check (default: 0)
            POLL_JITTER: Fraction of the interval randomly shaved off each sleep (default: 0.1)
            MAX_CONSECUTIVE_TRANSIENT_ERRORS: Describe failures tolerated in a row (default: 3)
            MAX_CALL_ATTEMPTS: Attempts for create/modify/delete calls (default: 3)
            RETRY_BACKOFF_BASE: Base seconds for exponential backoff (default: 2)
            CALL_TIMEOUT: Timeout for a single remote call in seconds (default: 60)
            MAX_CONCURRENT_RECONCILES: Resources reconciled in parallel (default: 4)
            AWS_REGION: Region for AWS resource types
            AZURE_SUBSCRIPTION_ID: Subscription for Azure resource types
            DRY_RUN: If "true", only detect drift without applying (default: false)
            LOG_JSON: If "false", log in plain text instead of JSON (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_float(key: str, default: float) -> float:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be a number: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            specs_dir=Path(os.environ.get("SPECS_DIR", "/specs")),
            create_timeout_seconds=get_int("CREATE_TIMEOUT", DEFAULT_CREATE_TIMEOUT_SECONDS),
            update_timeout_seconds=get_int("UPDATE_TIMEOUT", DEFAULT_UPDATE_TIMEOUT_SECONDS),
            delete_timeout_seconds=get_int("DELETE_TIMEOUT", DEFAULT_DELETE_TIMEOUT_SECONDS),
            poll_interval_seconds=get_float("POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS),
            poll_delay_seconds=get_float("POLL_DELAY", DEFAULT_POLL_DELAY_SECONDS),
            poll_jitter=get_float("POLL_JITTER", DEFAULT_POLL_JITTER),
            max_consecutive_transient_errors=get_int(
                "MAX_CONSECUTIVE_TRANSIENT_ERRORS", DEFAULT_MAX_CONSECUTIVE_TRANSIENT_ERRORS
            ),
            max_call_attempts=get_int("MAX_CALL_ATTEMPTS", DEFAULT_MAX_CALL_ATTEMPTS),
            retry_backoff_base_seconds=get_float(
                "RETRY_BACKOFF_BASE", DEFAULT_RETRY_BACKOFF_BASE_SECONDS
            ),
            call_timeout_seconds=get_int("CALL_TIMEOUT", DEFAULT_CALL_TIMEOUT_SECONDS),
            max_concurrent_reconciles=get_int(
                "MAX_CONCURRENT_RECONCILES", DEFAULT_MAX_CONCURRENT_RECONCILES
            ),
            aws_region=os.environ.get("AWS_REGION") or None,
            azure_subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID") or None,
            dry_run=get_bool("DRY_RUN", False),
            log_json=get_bool("LOG_JSON", True),
        )
