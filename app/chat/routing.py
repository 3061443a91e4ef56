"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/socket/ - Per-user realtime feed

Authentication:
    JWT access token passed as query parameter: ?token=<jwt_access_token>
    JWTAuthMiddleware validates it and attaches the user to the scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/socket/", consumers.SocketConsumer.as_asgi()),
]
