"""
Authentication views.

This module provides API views for:
- Registration, login and logout (JWT via djangorestframework-simplejwt)
- Current user profile (read/update), avatar upload
- Push-token registration used by the notification fan-out
- Listing other users to start a conversation with

Related files:
    - serializers.py: Request/response serialization
    - services.py: Business logic (AuthService)
    - urls.py: URL routing
"""

from django.contrib.auth import user_logged_in
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.models import User
from authentication.serializers import (
    AvatarUploadSerializer,
    LoginSerializer,
    LogoutSerializer,
    ProfileUpdateSerializer,
    PushTokenSerializer,
    RegisterSerializer,
    UserSerializer,
)
from authentication.services import AuthService
from core.views import service_error_response


def _auth_payload(request, user: User) -> dict:
    return {
        "user": UserSerializer(user, context={"request": request}).data,
        **AuthService.issue_tokens(user),
    }


# =============================================================================
# Auth Lifecycle
# =============================================================================


class RegisterView(APIView):
    """
    POST: Create an account and return its tokens.

    URL: /api/v1/register/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register",
        tags=["Auth"],
        request=RegisterSerializer,
        responses={
            201: OpenApiResponse(description="User and tokens"),
            400: OpenApiResponse(description="Validation error"),
        },
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.register(
            name=serializer.validated_data["name"],
            email=serializer.validated_data["email"],
            password=serializer.validated_data["password"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(_auth_payload(request, result.data), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST: Exchange email/password for tokens.

    URL: /api/v1/login/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Login",
        tags=["Auth"],
        request=LoginSerializer,
        responses={
            200: OpenApiResponse(description="User and tokens"),
            400: OpenApiResponse(description="Invalid credentials"),
        },
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]

        user_logged_in.send(sender=user.__class__, request=request, user=user)

        return Response(_auth_payload(request, user))


class LogoutView(APIView):
    """
    POST: Revoke the refresh token. Always answers 200.

    URL: /api/v1/logout/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Logout",
        tags=["Auth"],
        request=LogoutSerializer,
        responses={200: OpenApiResponse(description="Logged out")},
    )
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        AuthService.logout(request.user, serializer.validated_data.get("refresh"))
        return Response({"message": "Logged out successfully"})


# =============================================================================
# Current User
# =============================================================================


class CurrentUserView(APIView):
    """
    GET: Current user
    PUT: Update name/email

    URL: /api/v1/user/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Get current user", tags=["Users"], responses={200: UserSerializer})
    def get(self, request):
        return Response(UserSerializer(request.user, context={"request": request}).data)

    @extend_schema(
        summary="Update current user",
        tags=["Users"],
        request=ProfileUpdateSerializer,
        responses={200: UserSerializer},
    )
    def put(self, request):
        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.update_profile(request.user, **serializer.validated_data)
        if not result.success:
            return service_error_response(result)

        return Response(UserSerializer(result.data, context={"request": request}).data)


class AvatarUploadView(APIView):
    """
    POST: Upload a new avatar (multipart, field "avatar").

    URL: /api/v1/user/avatar/
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        summary="Upload avatar",
        tags=["Users"],
        request=AvatarUploadSerializer,
        responses={200: UserSerializer},
    )
    def post(self, request):
        serializer = AvatarUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.update_avatar(request.user, serializer.validated_data["avatar"])
        return Response(
            {
                "message": "Avatar uploaded successfully",
                "user": UserSerializer(result.data, context={"request": request}).data,
            }
        )


class PushTokenView(APIView):
    """
    POST: Register the device push token used for message notifications.

    URL: /api/v1/user/fcm-token/
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, FormParser, MultiPartParser]

    @extend_schema(
        summary="Register push token",
        tags=["Users"],
        request=PushTokenSerializer,
        responses={
            200: OpenApiResponse(description="Token registered"),
            400: OpenApiResponse(description="Missing token"),
        },
    )
    def post(self, request):
        serializer = PushTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.register_push_token(
            request.user, serializer.validated_data["fcm_token"]
        )
        if not result.success:
            return service_error_response(result)

        return Response({"message": "FCM token registered successfully"})


class UserListView(generics.ListAPIView):
    """
    GET: Every other active user, for starting a conversation.

    URL: /api/v1/users/
    """

    permission_classes = [IsAuthenticated]
    serializer_class = UserSerializer
    pagination_class = None

    @extend_schema(summary="List users", tags=["Users"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return User.objects.filter(is_active=True).exclude(pk=self.request.user.pk)
