"""
Tests for chat app.

This package contains test modules for:
- test_services.py: Pointer maintenance, messages, groups, conversation list
- test_views.py: REST API endpoint tests
- test_consumers.py: Broadcast, socket consumer and token parsing tests
- test_previews.py: Voice-message preview formatting
- test_threads.py: Thread addressing

Usage:
    pytest chat/tests/
    pytest chat/tests/test_services.py
"""
