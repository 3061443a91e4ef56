"""
Tests for notifications app.

This package contains test modules for:
- test_services.py: Fan-out recipients, payload and failure isolation
- test_push.py: Expo and FCM transports over httpx.MockTransport
- test_tasks.py: Celery task tests

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_push.py
"""
