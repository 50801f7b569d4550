"""Main file for the oracle network"""

import argparse
import asyncio
import json
import logging

from oracle_network.app_setup import record_factory, setup_logging, setup_runner
from oracle_network.db.database import close_db, init_db
from oracle_network.monitor import build_network_report, to_primitive
from oracle_network.utils.config_utils import load_config, load_transactions
from oracle_network.validators import ConfigValidator


async def main(config_file, transactions_file, output_file=None):
    """Replay a transaction script against a fresh network and report on it."""
    # Load configuration and set up logging
    config = load_config(config_file)

    setup_logging(config)
    logging.setLogRecordFactory(record_factory)

    if not ConfigValidator(config).run_config_validation():
        logging.error("Configuration checks failed")
        return

    runner = setup_runner(config)

    try:
        # Initialize database
        await init_db()
        logging.info("Database initialized successfully.")
    except Exception as e:  # pylint: disable=broad-except
        logging.error("Database initialization failed: %s", e)
        return

    try:
        transactions = load_transactions(transactions_file)
        results = await runner.replay(transactions)
        report = build_network_report(runner.network)
        report["results"] = to_primitive(results)
        failures = sum(1 for result in results if not result.ok)
        logging.info(
            "Replayed %d operations, %d rejected", len(results), failures
        )
    except Exception as e:  # pylint: disable=broad-except
        logging.error("Transaction replay encountered an error: %s", e)
        return
    finally:
        await close_db()

    rendered = json.dumps(report, indent=2)
    if output_file:
        with open(output_file, "w", encoding="utf-8") as file:
            file.write(rendered)
        logging.info("Report written to %s", output_file)
    else:
        print(rendered)


if __name__ == "__main__":
    # Loads configuration file
    parser = argparse.ArgumentParser(
        prog="Oracle Network",
        description="Replays oracle network transactions and reports on the result.",
    )

    parser.add_argument(
        "-c",
        "--configfile",
        help="Specify a file to override default configuration",
        default="config.yml",
    )
    parser.add_argument(
        "-t",
        "--transactions",
        help="YAML list of operations to apply in order",
        default="transactions.yml",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Write the JSON report to this file instead of stdout",
        default=None,
    )

    arguments = parser.parse_args()

    asyncio.run(
        main(
            config_file=arguments.configfile,
            transactions_file=arguments.transactions,
            output_file=arguments.output,
        )
    )
