"""Main module entrypoint for local runtime execution.

This module validates startup configuration and launches either the FastAPI
service or one transformation run.
"""

import argparse
import logging
import signal

import uvicorn

from hr_event_publisher.bootstrap import bootstrap_create_application, bootstrap_create_transformation_orchestrator
from hr_event_publisher.config import config_load_settings
from hr_event_publisher.jobs import JobOrchestratorPort

logger = logging.getLogger(__name__)


def main_install_shutdown_handlers(orchestrator: JobOrchestratorPort) -> None:
    """Route SIGINT/SIGTERM to the orchestrator.

    The first signal requests a graceful drain; any further signal forces
    shutdown and leaves unfinished change events behind the checkpoint.

    Args:
        orchestrator: Active job orchestrator.

    Returns:
        None: Signal handlers are installed as side effect.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    received_signals: list[int] = []

    def _main_handle_signal(signal_number: int, _frame) -> None:
        received_signals.append(signal_number)
        force = len(received_signals) > 1
        logger.warning("signal=%s received; requesting %s shutdown", signal_number, "forced" if force else "graceful")
        orchestrator.job_request_shutdown(force=force)

    signal.signal(signal.SIGINT, _main_handle_signal)
    signal.signal(signal.SIGTERM, _main_handle_signal)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with status 1 when a transformation run fails.
    """

    argument_parser = argparse.ArgumentParser(description="HR event publisher runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "transform-run"),
        help="Runtime command: `api` starts server, `transform-run` processes the change log once",
        type=str,
    )
    parsed_arguments = argument_parser.parse_args()

    if parsed_arguments.command == "transform-run":
        orchestrator = bootstrap_create_transformation_orchestrator()
        main_install_shutdown_handlers(orchestrator)
        execution_result = orchestrator.job_execute(job_name="transform_run")
        if execution_result.status != "success":
            raise SystemExit(1)
        return

    settings = config_load_settings()
    application = bootstrap_create_application()
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


if __name__ == "__main__":
    main()
