"""Main entry point for the converge operator.

Loads every declared resource from SPECS_DIR and converges them
concurrently. SIGTERM/SIGINT set the shared cancellation event: in-flight
operations stop at their next poll boundary and report the identifier of
anything partially created.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from collections.abc import Iterable
from datetime import UTC, datetime

from .clients.arm import ArmClient
from .clients.aws import AwsClient
from .clients.base import CompositeClient, RemoteClient
from .config import Config, ConfigurationError
from .credentials import detect_static_credentials, get_aws_session, get_azure_credential
from .descriptors import ResourceRegistry
from .errors import FindError, ReconcileError
from .models import ResourceSpec
from .reconciler import Action, ApplyResult, Reconciler
from .resources import ARM_API_VERSIONS, AWS_OPERATIONS, default_registry
from .spec_loader import SpecLoadError, load_specs

# Standard LogRecord attributes, everything else is an ``extra`` field
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)

AWS_TYPE_PREFIX = "aws_"
AZURE_TYPE_PREFIX = "azurerm_"


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(json_output: bool = True, level: int = logging.INFO) -> None:
    """Configure structured logging with JSON output for production."""
    handler = logging.StreamHandler(sys.stdout if json_output else sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # Reduce noise from the cloud SDKs
    for name in ("azure", "botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


def build_client(config: Config, registry: ResourceRegistry) -> RemoteClient:
    """Build a client routing each type prefix to its cloud adapter.

    The Azure adapter is only built when AZURE_SUBSCRIPTION_ID is set.
    Without it, Azure types fail with a VALIDATION_FAILED RemoteError.
    """
    routes: dict[str, RemoteClient] = {}
    type_names = registry.type_names

    if any(name.startswith(AWS_TYPE_PREFIX) for name in type_names):
        routes[AWS_TYPE_PREFIX] = AwsClient(
            AWS_OPERATIONS,
            region=config.aws_region,
            session=get_aws_session(config.aws_region),
        )

    if config.azure_subscription_id and any(
        name.startswith(AZURE_TYPE_PREFIX) for name in type_names
    ):
        routes[AZURE_TYPE_PREFIX] = ArmClient(
            get_azure_credential(),
            config.azure_subscription_id,
            api_versions=ARM_API_VERSIONS,
        )

    return CompositeClient(routes)


async def run(
    config: Config,
    specs: Iterable[ResourceSpec],
    registry: ResourceRegistry,
    client: RemoteClient,
    cancel_event: asyncio.Event | None = None,
    *,
    reconciler: Reconciler | None = None,
) -> list[ApplyResult]:
    """Apply every spec concurrently, bounded by MAX_CONCURRENT_RECONCILES.

    A failing spec never cancels the others: its error is reported in its
    ApplyResult.

    Returns:
        One ApplyResult per spec, in input order.
    """
    logger = logging.getLogger(__name__)
    reconciler = reconciler or Reconciler(client, registry, config, cancel_event=cancel_event)
    semaphore = asyncio.Semaphore(config.max_concurrent_reconciles)

    async def apply_one(spec: ResourceSpec) -> ApplyResult:
        async with semaphore:
            try:
                result = await reconciler.apply(spec, dry_run=config.dry_run)
            except (ReconcileError, FindError, ValueError) as e:
                result = ApplyResult(
                    name=spec.name,
                    type_name=spec.type,
                    action=Action.FAILED,
                    identifier=getattr(e, "identifier", None) or spec.identifier,
                    planned=config.dry_run,
                    error=e,
                )
            except Exception as e:
                logger.exception(
                    "Unexpected error applying resource",
                    extra={"resource": spec.name, "type_name": spec.type},
                )
                result = ApplyResult(
                    name=spec.name,
                    type_name=spec.type,
                    action=Action.FAILED,
                    identifier=spec.identifier,
                    planned=config.dry_run,
                    error=e,
                )
        _log_result(result)
        return result

    return list(await asyncio.gather(*(apply_one(spec) for spec in specs)))


def _log_result(result: ApplyResult) -> None:
    """Log apply result with structured data."""
    logger = logging.getLogger(__name__)
    extra = {
        "resource": result.name,
        "type_name": result.type_name,
        "action": result.action.value,
        "identifier": result.identifier,
        "planned": result.planned,
        "drift": sorted(result.drift),
    }
    if result.error is not None:
        extra["error"] = str(result.error)
        logger.error("Apply failed", extra=extra)
    else:
        logger.info("Apply result", extra=extra)


async def main() -> int:
    """Run the operator once over SPECS_DIR.

    Returns:
        Exit code (0 for success, 1 if any resource failed or on
        configuration errors).
    """
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        setup_logging()
        logging.getLogger(__name__).error("Configuration error", extra={"error": str(e)})
        return 1

    setup_logging(json_output=config.log_json)
    logger = logging.getLogger(__name__)

    registry = default_registry()
    try:
        specs = load_specs(config.specs_dir, registry)
    except SpecLoadError as e:
        logger.error(
            "Spec loading failed",
            extra={"error": str(e), "specs_dir": str(config.specs_dir)},
        )
        return 1

    detect_static_credentials()
    logger.info(
        "Starting converge operator",
        extra={
            "specs_dir": str(config.specs_dir),
            "resources": len(specs),
            "dry_run": config.dry_run,
            "max_concurrent_reconciles": config.max_concurrent_reconciles,
        },
    )

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal", extra={"signal": sig.name})
        cancel_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

    client = build_client(config, registry)
    results = await run(config, specs, registry, client, cancel_event)

    failed = [r for r in results if not r.success]
    logger.info(
        "Operator finished",
        extra={
            "resources": len(results),
            "changed": sum(1 for r in results if r.changed),
            "failed": len(failed),
        },
    )
    return 1 if failed else 0


def run_main() -> None:
    """Entry point for the operator."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run_main()
