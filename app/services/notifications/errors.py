"""Notification engine error taxonomy"""

from typing import Optional

class NotificationError(Exception):
    """Base class for notification engine failures"""

class TemplateNotFoundError(NotificationError, KeyError):
    """Unknown template key; a programming error"""

    def __init__(self, template_key: str):
        super().__init__(f"Template not found: {template_key}")
        self.template_key = template_key

    def __str__(self) -> str:
        return self.args[0]

class RecipientUnresolvedError(NotificationError):
    """A domain id could not be mapped to a user id"""

class PreferenceCheckFailure(NotificationError):
    """Backing store failed during an opt-in lookup"""

class StoreError(NotificationError):
    """Backing store failed while reading or writing notifications"""

class NotFoundError(NotificationError):
    """Target row does not exist or is not reachable by the caller"""

class UnsupportedChannelError(NotificationError):
    """Channel exists in the data model but has no delivery transport"""

    def __init__(self, channel: str):
        super().__init__(f"Channel {channel} is not implemented")
        self.channel = channel

class PushConfigurationError(NotificationError):
    """VAPID credentials are missing"""

class DeliveryError(NotificationError):
    """Push delivery to one endpoint failed"""

    PERMANENT_STATUS_CODES = (404, 410)

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def permanent(self) -> bool:
        return self.status_code in self.PERMANENT_STATUS_CODES
