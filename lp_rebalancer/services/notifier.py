"""Discord webhook notifications"""

import logging

import requests

logger = logging.getLogger(__name__)

INFO = "info"
ERROR = "error"
CRITICAL = "critical"

_PREFIX = {
    INFO: "**INFO**",
    ERROR: "**ERROR**",
    CRITICAL: "**CRITICAL**",
}
_LOG_LEVEL = {
    INFO: logging.INFO,
    ERROR: logging.ERROR,
    CRITICAL: logging.CRITICAL,
}


class DiscordNotifier:
    """Post bot events to a Discord webhook; without a URL events are only logged"""

    def __init__(self, webhook_url=None, username="LP Rebalancer", timeout=10, session=None):
        self.webhook_url = webhook_url
        self.username = username
        self.timeout = timeout
        self.session = session or requests.Session()

    def notify(self, message, severity=INFO):
        """Send a message. Never raises: delivery failures are logged."""
        if severity not in _PREFIX:
            severity = ERROR
        if not self.webhook_url:
            logger.log(_LOG_LEVEL[severity], "Notification (no webhook configured): %s", message)
            return False

        try:
            response = self.session.post(
                self.webhook_url,
                json={"content": f"{_PREFIX[severity]}\n{message}", "username": self.username},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("Failed to send Discord notification: %s", e)
            return False

        logger.debug("Sent Discord notification: %s", message[:50])
        return True
