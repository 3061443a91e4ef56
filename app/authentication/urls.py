"""
URL configuration for authentication app.

URL structure (prefixed with /api/v1/ in config/urls.py):
    register/           - POST create account
    login/              - POST obtain tokens
    logout/             - POST revoke refresh token
    user/               - GET/PUT current user
    user/avatar/        - POST upload avatar
    user/fcm-token/     - POST register push token
    users/              - GET other users
"""

from django.urls import path

from authentication.views import (
    AvatarUploadView,
    CurrentUserView,
    LoginView,
    LogoutView,
    PushTokenView,
    RegisterView,
    UserListView,
)

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("user/", CurrentUserView.as_view(), name="current-user"),
    path("user/avatar/", AvatarUploadView.as_view(), name="user-avatar"),
    path("user/fcm-token/", PushTokenView.as_view(), name="user-push-token"),
    path("users/", UserListView.as_view(), name="user-list"),
]
