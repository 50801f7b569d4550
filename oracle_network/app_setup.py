"""This module contains the functions to setup logging, the network and alerts."""

import logging
from logging.config import dictConfig
from typing import Optional

from oracle_network.core.network import OracleNetwork
from oracle_network.db.database import configure_database, get_database_url
from oracle_network.logfiles.logging_config import RESET, get_log_config, level_color
from oracle_network.runner import NetworkRunner
from oracle_network.utils.alerts import AlertManager
from oracle_network.utils.config_utils import load_network_settings

logger = logging.getLogger(__name__)


# Setup Logging
def setup_logging(config):
    """Setup the logging configuration based on the specified configuration."""
    dictConfig(get_log_config(config.get("Runner")))


original_log_record_factory = logging.getLogRecordFactory()


def record_factory(*args, **kwargs):
    """Factory function for creating log records."""
    record = original_log_record_factory(*args, **kwargs)
    record.level_color = level_color(record.levelno)
    record.end_color = RESET
    return record


# Setup Network
def setup_network(config) -> OracleNetwork:
    """Build an empty network with the settings of the ``Network`` section."""
    settings = load_network_settings(config)
    logger.info(
        "Network configured: min stake %s, quorum %s, round duration %sms",
        settings.min_stake_amount,
        settings.min_quorum,
        settings.round_duration,
    )
    return OracleNetwork(settings)


# Setup Database
def setup_database(config) -> None:
    """Point the session factory at the configured database, if any."""
    configure_database(get_database_url(config))


def setup_alerts_manager(config) -> Optional[AlertManager]:
    """Setup the AlertManager based on the provided configuration."""
    alerts_config = config.get("alerts") or {}
    notification_configs = alerts_config.get("notifications", [])

    if not notification_configs:
        logger.warning(
            "No alert notifications configured. AlertManager will not be initialized."
        )
        return None

    alert_config = {
        "cooldown": alerts_config.get("cooldown", 1800),
        "thresholds": alerts_config.get("thresholds", {}),
    }

    logger.info(
        "Initializing AlertManager with %d notification configs",
        len(notification_configs),
    )

    return AlertManager(
        network_name=alerts_config.get("network_name", "oracle-network"),
        alert_config=alert_config,
        notification_configs=notification_configs,
    )


# Setup Runner
def setup_runner(config) -> NetworkRunner:
    """Setup the runner that sequences writes to the network."""
    setup_database(config)
    return NetworkRunner(
        network=setup_network(config),
        alerts_manager=setup_alerts_manager(config),
    )
