import logging
import os

logger = logging.getLogger(__name__)


class PreFlightCheckError(Exception):
    """Custom exception for pre-flight check failures."""
    pass


def run_pre_flight_checks(export_path: str, config: dict) -> None:
    """
    Verifies that the export file and the output locations are usable before
    anything is imported.

    Args:
        export_path: Path of the Blogger export file.
        config: The application configuration dictionary.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    logger.info("Running pre-flight checks...")

    # Check 1: export file
    if not export_path or not os.path.isfile(export_path):
        raise PreFlightCheckError(f"Export file not found: {export_path}")
    if not os.access(export_path, os.R_OK):
        raise PreFlightCheckError(f"Export file is not readable: {export_path}")
    if os.path.getsize(export_path) == 0:
        raise PreFlightCheckError(f"Export file is empty: {export_path}")

    # Check 2: output directories, unless nothing will be written
    if config.get("import", {}).get("dry_run", False):
        logger.info("Dry-run: skipping output directory checks.")
    else:
        for key, path in (
            ("import.output_dir", config.get("import", {}).get("output_dir")),
            ("reports.dir", config.get("reports", {}).get("dir")),
        ):
            if not path:
                raise PreFlightCheckError(f"Missing configuration value: {key}")
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                raise PreFlightCheckError(f"Cannot create directory {path} ({key}): {e}")
            if not os.access(path, os.W_OK):
                raise PreFlightCheckError(f"Directory is not writable: {path} ({key})")

    logger.info("Pre-flight checks passed successfully.")
