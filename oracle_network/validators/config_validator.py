"""Configuration Validator Module."""

import logging

from oracle_network.core.settings import NetworkSettings

logger = logging.getLogger(__name__)

SUPPORTED_NOTIFICATIONS = {
    "slack": ("webhook_url",),
    "discord": ("webhook_url",),
    "telegram": ("bot_token", "chat_id"),
}


class ConfigValidator:
    """Configuration Validator Class."""

    REQUIRED_NETWORK_KEYS = [
        "min_stake_amount",
        "min_quorum",
        "round_duration",
    ]

    def __init__(self, config: dict):
        """
        Initialize the ConfigValidator with the provided configuration.
        Args:
            config (dict): The configuration dictionary to validate.
        """
        self.config = config or {}

    def validate_network_keys(self) -> bool:
        """Ensure all required keys are present in the Network section."""
        missing_keys = [
            key
            for key in self.REQUIRED_NETWORK_KEYS
            if key not in (self.config.get("Network") or {})
        ]

        if missing_keys:
            logger.error(
                "❌ Missing required keys in Network section: %s", ", ".join(missing_keys)
            )
            return False

        logger.info("✅ Required Network Configurations are present.")
        return True

    def validate_network_values(self) -> bool:
        """Ensure the Network parameters are within their allowed ranges."""
        try:
            NetworkSettings.from_dict(self.config.get("Network") or {})
        except (TypeError, ValueError, ArithmeticError) as e:
            logger.error("❌ Invalid Network configuration: %s", e)
            return False
        logger.info("✅ Network parameters are valid.")
        return True

    def validate_database(self) -> bool:
        """The database section is optional, but its url must be async capable."""
        database = self.config.get("database") or {}
        url = database.get("url")
        if not url:
            logger.warning("Database URL not provided. Events will not be persisted.")
            return True
        driver = url.split("://", 1)[0]
        if "+" not in driver:
            logger.error(
                "❌ Database url '%s' must name an async driver, e.g. sqlite+aiosqlite.",
                driver,
            )
            return False
        logger.info("✅ Database Configuration is present.")
        return True

    def validate_alerts(self) -> bool:
        """Check notification entries of the alerts section."""
        alerts = self.config.get("alerts") or {}
        for notification in alerts.get("notifications") or []:
            kind = notification.get("type")
            if kind not in SUPPORTED_NOTIFICATIONS:
                logger.error("❌ Unsupported notification type: %s", kind)
                return False
            missing = [
                key
                for key in SUPPORTED_NOTIFICATIONS[kind]
                if key not in (notification.get("config") or {})
            ]
            if missing:
                logger.error(
                    "❌ Missing keys for %s notification: %s", kind, ", ".join(missing)
                )
                return False
        return True

    def run_config_validation(self) -> bool:
        """Run all configuration checks."""
        return all(
            [
                self.validate_network_keys(),
                self.validate_network_values(),
                self.validate_database(),
                self.validate_alerts(),
            ]
        )
