"""Alert manager module"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, TypedDict, Union

import apprise
from apprise import AppriseAsset, NotifyFormat, NotifyType

logger = logging.getLogger(__name__)


class AlertConfig(TypedDict, total=False):
    """Base alert configuration"""

    cooldown: int
    thresholds: Dict[str, Union[int, float]]


class NotificationConfig(TypedDict):
    """Notification configuration"""

    type: str
    config: Dict[str, str]


@dataclass
class Thresholds:
    """Thresholds for alerts"""

    minimum_active_oracles: int
    minimum_reward_pool: int


class AlertManager:
    """Alert manager class"""

    DEFAULT_THRESHOLDS = Thresholds(
        minimum_active_oracles=3,
        minimum_reward_pool=0,
    )

    def __init__(
        self,
        network_name: str,
        alert_config: Optional[AlertConfig] = None,
        notification_configs: Optional[List[NotificationConfig]] = None,
        clock: Callable[[], float] = time.time,
    ):
        alert_config = alert_config or {}
        self.network_name = network_name
        self.cooldown = alert_config.get("cooldown", 1800)  # Default 30 minutes
        self.clock = clock

        # Merge default thresholds with custom thresholds
        custom_thresholds = alert_config.get("thresholds", {}) or {}
        self.thresholds = Thresholds(
            minimum_active_oracles=custom_thresholds.get(
                "minimum_active_oracles",
                self.DEFAULT_THRESHOLDS.minimum_active_oracles,
            ),
            minimum_reward_pool=custom_thresholds.get(
                "minimum_reward_pool", self.DEFAULT_THRESHOLDS.minimum_reward_pool
            ),
        )

        self.asset = AppriseAsset(
            app_id="OracleNetwork",
            app_desc="Oracle Network Operator Alerts",
        )

        self.apprise = apprise.Apprise(asset=self.asset)
        self._setup_notifications(notification_configs or [])

        self.last_alert_times: Dict[str, float] = {}

    def _setup_notifications(self, notification_configs: List[NotificationConfig]):
        """Setup notification services based on configuration"""
        for config in notification_configs:
            if config["type"] == "slack":
                self.apprise.add(f"slack://{config['config']['webhook_url']}")
            elif config["type"] == "discord":
                self.apprise.add(f"discord://{config['config']['webhook_url']}")
            elif config["type"] == "telegram":
                self.apprise.add(
                    f"tgram://{config['config']['bot_token']}/{config['config']['chat_id']}"
                )

        logger.info(
            "Initialized AlertManager with %d notification services", len(self.apprise)
        )

    async def notify_invariant_violation(self, asset: Optional[str], operation: str, error: Exception):
        """Operator intervention is required: an asset stopped processing rounds."""
        await self.send_alert(
            "Invariant Violation",
            f"*Asset*: *{asset or 'n/a'}*\n*Operation*: {operation}\n*Error*: {error}\n"
            "Rounds for this asset are halted until an operator intervenes.",
        )

    async def notify_slashing(self, oracle_id: str, amount: int, asset: str, round_id: int):
        """Notify about stake forfeited by an oracle."""
        try:
            await self.send_alert(
                "Oracle Slashed",
                f"*Oracle*: *{oracle_id}*\n*Amount*: {amount}\n*Asset*: {asset}\n*Round*: {round_id}",
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Failed to send alert for slashing: %s", str(e))

    async def check_active_oracles(self, active_oracles: int) -> None:
        """Alert when too few oracles remain to reach quorum."""
        if active_oracles < self.thresholds.minimum_active_oracles:
            await self.send_alert(
                "Low Active Oracles",
                f"*Active oracles*: *{active_oracles}*\n*Minimum required*: {self.thresholds.minimum_active_oracles}",
            )

    async def check_reward_pool(self, reward_pool: int) -> None:
        """Alert when the reward pool fell under its threshold."""
        if reward_pool < self.thresholds.minimum_reward_pool:
            await self.send_alert(
                "Low Reward Pool",
                f"*Reward pool*: *{reward_pool}*\n*Threshold*: {self.thresholds.minimum_reward_pool}",
            )

    def _format_alert_message(self, time_str: str, message: str) -> str:
        """Format the alert message for universal compatibility and conciseness"""
        return f"""

*Network*: *{self.network_name}*

*Time*: {time_str}

{message}

------------------------
_This is an automated alert from the Oracle Network Operator System_
        """

    async def send_alert(self, alert_type: str, message: str) -> bool:
        """Send a concise alert message to all configured notification services"""
        current_time = self.clock()
        time_str = self._format_time(current_time)

        if current_time - self.last_alert_times.get(alert_type, float("-inf")) <= self.cooldown:
            logger.info("Suppressed repeated alert for %s at %s", alert_type, time_str)
            return False

        self.last_alert_times[alert_type] = current_time
        formatted_message = self._format_alert_message(time_str, message)

        logger.error("ALERT - %s: %s", alert_type, formatted_message)

        if not len(self.apprise):  # pylint: disable=use-implicit-booleaness-not-len
            return False

        result = await self.apprise.async_notify(
            body=formatted_message,
            title=f"Oracle Network Alert: {alert_type}",
            notify_type=self._get_notify_type(alert_type),
            body_format=NotifyFormat.TEXT,
        )

        if result:
            logger.info("Successfully sent alert to all configured services")
        else:
            logger.error("Failed to send alert to one or more services")
        return bool(result)

    def _get_notify_type(self, alert_type: str) -> NotifyType:
        """Map alert types to Apprise NotifyType"""
        type_map = {
            "Invariant Violation": NotifyType.FAILURE,
            "Oracle Slashed": NotifyType.WARNING,
            "Low Active Oracles": NotifyType.WARNING,
            "Low Reward Pool": NotifyType.WARNING,
        }
        return type_map.get(alert_type, NotifyType.INFO)

    def _format_time(self, timestamp: float) -> str:
        """Format a posix timestamp to a human-readable string"""
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")
