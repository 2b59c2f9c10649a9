#!/usr/bin/env python3
"""Seed the local store with sample clients, debts and payments.

The data is written to the configured data directory (``DEVEDORES_DATA_DIR``,
``~/.devedores`` by default) and can be mirrored to a sync folder afterwards
with ``scripts/sync_folder.py sync``.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from devedores.app import build_store
from devedores.config import AppConfig
from devedores.generators import populate
from devedores.logging import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate sample collection data")
    parser.add_argument(
        "--clients",
        type=int,
        default=10,
        help="Number of clients to generate (default: 10)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: DEVEDORES_SEED or random)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Override the local data directory",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Discard existing local data before generating",
    )
    args = parser.parse_args()

    config = AppConfig.from_env()
    setup_logging(config.log_level, config.log_format)
    if args.data_dir is not None:
        config.storage.data_dir = args.data_dir

    store = build_store(config)
    if args.reset:
        for client in store.list_clients():
            store.remove_client(client.client_id)
        logger.info("Existing local data removed")

    seed = args.seed if args.seed is not None else config.seed
    summary = populate(store, num_clients=args.clients, seed=seed)

    print("=" * 60)
    print("Sample data generated")
    print("=" * 60)
    print(f"Data directory: {config.storage.data_dir}")
    for entity, count in summary.items():
        print(f"  {entity:<10} {count:>6}")


if __name__ == "__main__":
    main()
