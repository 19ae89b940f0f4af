"""
Entry point for the Blogger import tool.
"""

import argparse
import logging
import sys

from blogger_import.extractors.blogger_extractor import ExportParseError
from blogger_import.import_tool import BloggerImportTool
from blogger_import.utils.logger import setup_logging
from blogger_import.utils.pre_flight_checks import PreFlightCheckError, run_pre_flight_checks

CONFIG_FILE = "config/import_config.json"

logger = logging.getLogger("blogger_import.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import a Blogger export into the local content store.")
    parser.add_argument("export", help="Path to the Blogger export file (blog-MM-DD-YYYY.xml)")
    parser.add_argument("--config", default=CONFIG_FILE, help=f"JSON configuration file (default: {CONFIG_FILE})")
    parser.add_argument("--dry-run", action="store_true", help="Parse and convert without writing to the store")
    parser.add_argument("--limit", type=int, default=None, help="Import at most this many posts and pages")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")
    return parser


def main(argv=None) -> int:
    """
    Main function to run the Blogger import tool.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    tool = BloggerImportTool(config_file=args.config)
    if args.dry_run:
        tool.config["import"]["dry_run"] = True
    if args.limit is not None:
        tool.config["import"]["limit"] = args.limit

    try:
        run_pre_flight_checks(args.export, tool.config)
    except PreFlightCheckError as e:
        logger.error("Pre-flight check failed: %s", e)
        return 1

    logger.info("Starting Blogger import of %s", args.export)
    try:
        result = tool.parse_export(args.export)
    except ExportParseError as e:
        logger.error("%s", e)
        return 1

    if not result.content_entries:
        logger.error("No posts or pages found in %s.", args.export)
        return 1

    summary = tool.import_entries(result)
    mapping_path = tool.export_url_mapping()
    logger.info("URL mapping written to %s", mapping_path)
    logger.info("Import process finished.")

    print(
        f"posts: {summary.posts.imported} imported, {summary.posts.skipped} skipped, {summary.posts.failed} failed\n"
        f"pages: {summary.pages.imported} imported, {summary.pages.skipped} skipped, {summary.pages.failed} failed\n"
        f"comments: {summary.comments.imported} imported, {summary.comments.skipped} skipped, "
        f"{summary.comments.failed} failed"
    )
    failed = summary.posts.failed + summary.pages.failed + summary.comments.failed
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
