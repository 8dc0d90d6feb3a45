"""
Chat application configuration.

This app provides the real-time messaging core:
- Private (1:1) and group conversations
- Session registry and room membership for live sockets
- Message fan-out, read receipts, typing and presence broadcasts
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """
    Configuration for the chat application.

    Owns the process-wide SessionRegistry, created once at startup.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        from chat import signals  # noqa: F401
        from chat.registry import SessionRegistry

        self.session_registry = SessionRegistry()
