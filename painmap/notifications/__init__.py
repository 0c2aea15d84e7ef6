# painmap/notifications/__init__.py
from .email import EmailNotifier, NotificationResult

__all__ = ["EmailNotifier", "NotificationResult"]
