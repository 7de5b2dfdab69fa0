#!/usr/bin/env python3
"""
docintake - Document Ingestion Pipeline - Main Entry Point.

Imports PDF and Excel financial documents from the command line: each
input file is staged into the temp directory (as an upload would be),
imported through the worker and summarized.

Usage:
    Command Line:
        python main.py --input invoice.pdf
        python main.py --input ./inbox/ --report --workers 8

    Python:
        from main import run_import
        session = run_import(["invoice.pdf"])

Author: Finance Platform Team
Version: 1.0.0
"""

import argparse
import logging
import shutil
import sys
import uuid
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager, get_config
from docintake.utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logger_from_config
from docintake.utils.helpers import ensure_directory, sanitize_filename
from docintake.utils.exceptions import DocIntakeError


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="docintake - financial document import",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Import a single document:
        python main.py --input invoice.pdf

    Import a folder and write an Excel report:
        python main.py --input ./inbox/ --report
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input file or directory of PDF/Excel documents"
    )

    parser.add_argument(
        "--import-id",
        type=str,
        default=None,
        help="Import session id (default: generated)"
    )

    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="User the import is recorded against"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--report",
        action="store_true",
        help="Write an Excel report of the import results"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: worker.max_workers)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)
    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("DOCINTAKE DOCUMENT IMPORT")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")

    return config


def stage_files(files: List[Path], import_id: str) -> List[Path]:
    """
    Copy input files into the temp directory.

    The pipeline deletes its source once a file is stored, so inputs are
    never handed to it directly.
    """
    temp_dir = ensure_directory(Path(get_config("paths.temp_dir", "data/temp")) / import_id)
    staged = []
    for index, path in enumerate(files):
        target = temp_dir / f"{index:04d}-{sanitize_filename(path.name)}"
        shutil.copy2(path, target)
        staged.append(target)
    return staged


def run_import(
    inputs: List[Path],
    import_id: Optional[str] = None,
    user_id: Optional[str] = None,
    workers: Optional[int] = None,
    report: bool = False
):
    """
    Import files through the worker.

    Args:
        inputs: Files to import.
        import_id: Import session id (generated when None).
        user_id: Uploading user.
        workers: Thread pool size override.
        report: Write an Excel report.

    Returns:
        The completed ImportSession.

    Example:
        >>> session = run_import([Path("invoice.pdf")])
        >>> session.summary()["successful"]
        1
    """
    from docintake.store import DatabaseHandler
    from docintake.session import ImportStore
    from docintake.jobs import ImportJob, ImportPipeline, ImportWorker, WorkerConfig
    from docintake.output_handler import ReportExporter

    logger = get_logger(__name__)
    import_id = import_id or uuid.uuid4().hex[:12]

    database = DatabaseHandler()
    database.create_tables()

    store = ImportStore()
    staged = stage_files(inputs, import_id)
    store.create(import_id, len(staged), [str(p) for p in staged], user_id)

    jobs = [
        ImportJob(
            file_path=str(temp),
            file_name=temp.name,
            original_name=source.name,
            import_id=import_id,
            user_id=user_id,
        )
        for source, temp in zip(inputs, staged)
    ]

    config = WorkerConfig.from_config()
    if workers:
        config.max_workers = workers

    pipeline = ImportPipeline(database, notifications=store.notifications)
    worker = ImportWorker(pipeline, store, config)
    try:
        worker.run_batch(jobs)
    finally:
        database.dispose()

    session = store.get(import_id)
    if report:
        path = ReportExporter().export(session)
        logger.info(f"Report: {path}")
    return session


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 success, 1 errors or failed files, 130 interrupted).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        from docintake.input_handler import InputHandler

        input_files = InputHandler().collect(args.input)
        if not input_files:
            logger.error("No files to process")
            return 1

        session = run_import(
            input_files,
            import_id=args.import_id,
            user_id=args.user_id,
            workers=args.workers,
            report=args.report,
        )

        summary = session.summary()
        logger.info("=" * 60)
        logger.info(
            f"Import {session.import_id} complete: {summary['successful']} successful, "
            f"{summary['failed']} failed, {summary['matched']} matched, "
            f"{summary['unallocated']} unallocated"
        )
        logger.info("=" * 60)

        return 0 if summary["failed"] == 0 else 1

    except DocIntakeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
