"""
Chat app for direct and group messaging.

This app handles:
- Groups, direct conversations, messages and attachments
- Last-message pointer maintenance on create and delete
- Thread reads, read markers and the sidebar conversation list
- WebSocket delivery of new messages

Related apps:
    - authentication: User model
    - notifications: Push fan-out for new messages

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the socket consumer and broadcast.py for publishing.

Usage:
    from chat.services import MessageService
    from chat.threads import DirectTarget

    result = MessageService.send_message(
        sender=user,
        target=DirectTarget(user_id=other_user.id),
        body="Hello!",
    )
"""
