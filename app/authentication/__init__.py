"""
Authentication application.

Chat users and their account lifecycle: registration, JWT login/logout,
profile, avatar and push-token registration.

Usage:
    from authentication.models import User
    from authentication.services import AuthService
"""
