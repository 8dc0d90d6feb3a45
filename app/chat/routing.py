"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - The single real-time endpoint

Authentication:
    Sockets connect anonymously and authenticate in-band by sending
    {"type": "authenticate", "data": "<jwt_access_token>"} as their first frame.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
