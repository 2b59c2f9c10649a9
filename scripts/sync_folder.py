#!/usr/bin/env python3
"""Mirror the local store to a JSON file in a sync folder.

Subcommands:
- status: show the sync state and local record counts
- configure PATH: choose the sync folder and sync immediately
- sync: run one reconciliation
- backup: write a dated backup next to the sync file
- sweep: recompute debt status and balances
- watch: keep syncing on an interval until interrupted
"""

import argparse
import signal
import sys
import threading
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from devedores.app import build_coordinator
from devedores.config import AppConfig
from devedores.exceptions import DevedoresError, PickerCancelledError
from devedores.logging import get_logger, setup_logging
from devedores.models import SyncStatus
from devedores.storage.directory import unsupported_picker
from devedores.sync import SyncCoordinator

logger = get_logger(__name__)


def print_status(coordinator: SyncCoordinator, status: SyncStatus) -> None:
    handle = coordinator.directory.handles.load()
    print(f"Available:          {coordinator.available}")
    print(f"Folder:             {handle.path if handle else '-'}")
    print(f"Connected:          {status.connected}")
    print(f"Folder configured:  {status.folder_configured}")
    print(f"Last sync:          {status.last_sync.isoformat() if status.last_sync else '-'}")
    print(f"Error:              {status.error or '-'}")
    if coordinator.configuration_required:
        print("Local data exists but no sync folder is configured. Run 'configure PATH'.")
    summary = coordinator.store.summary()
    print(f"Records:            {summary['clients']} clients, {summary['debts']} debts, "
          f"{summary['payments']} payments")


def run_watch(coordinator: SyncCoordinator) -> None:
    """Start the coordinator timers and block until SIGINT/SIGTERM."""
    stop = threading.Event()

    def handle_signal(signum: int, frame: object) -> None:
        logger.info("Shutdown requested")
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    coordinator.start()
    logger.info("Watching for changes every %.0fs, press Ctrl+C to stop", coordinator.sync_interval)
    stop.wait()
    coordinator.shutdown()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Synchronize local data with a sync folder")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Override the local data directory",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("status", help="Show sync status")
    configure = subparsers.add_parser("configure", help="Choose the sync folder")
    configure.add_argument("path", type=Path, help="Directory to sync into")
    subparsers.add_parser("sync", help="Reconcile once")
    subparsers.add_parser("backup", help="Write a dated backup into the sync folder")
    subparsers.add_parser("sweep", help="Recompute debt status and balances")
    subparsers.add_parser("watch", help="Sync continuously until interrupted")
    args = parser.parse_args()

    config = AppConfig.from_env()
    setup_logging(config.log_level, config.log_format)
    if args.data_dir is not None:
        config.storage.data_dir = args.data_dir

    picker = (lambda: args.path.expanduser()) if args.command == "configure" else unsupported_picker
    coordinator = build_coordinator(config, picker=picker)

    try:
        if args.command == "status":
            print_status(coordinator, coordinator.status)
        elif args.command == "configure":
            handle = coordinator.configure_folder()
            print(f"Sync folder set to {handle.path}")
            print_status(coordinator, coordinator.status)
        elif args.command == "sync":
            status = coordinator.sync()
            print_status(coordinator, status)
            return 0 if status.error is None else 1
        elif args.command == "backup":
            path = coordinator.backup()
            print(f"Backup written to {path}")
        elif args.command == "sweep":
            updated = coordinator.sweep_interest()
            print(f"{updated} debts updated")
        elif args.command == "watch":
            run_watch(coordinator)
    except PickerCancelledError:
        print("Folder selection cancelled")
        return 1
    except DevedoresError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
