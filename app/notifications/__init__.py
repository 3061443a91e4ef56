"""
Notifications app for push delivery of new chat messages.

This app provides:
- MessageNotificationService: recipient selection and payload building
- PushClient: Expo and FCM HTTP v1 transports
- send_message_notifications: Celery task run after a message commits

The app has no models; it reads users, groups and messages from the
authentication and chat apps.

Usage:
    from notifications.tasks import send_message_notifications

    send_message_notifications.delay(message.id)
"""
