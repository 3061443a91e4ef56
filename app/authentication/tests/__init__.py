"""
Tests for authentication app.

This package contains test modules for:
- test_services.py: AuthService tests
- test_views.py: API endpoint tests
- test_tasks.py: Expired token cleanup task tests

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_views.py
"""
