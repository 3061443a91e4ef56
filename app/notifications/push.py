"""
Push notification transports.

Two providers are supported, chosen per token:
    - Expo push relay: tokens starting with "ExponentPushToken"
    - Firebase Cloud Messaging HTTP v1: every other token

FCM v1 needs an OAuth2 access token. It is minted from the service-account
key (RS256-signed JWT assertion exchanged at the token URI) and cached in
the Django cache until shortly before it expires.

Every HTTP call is bounded by settings.PUSH_TIMEOUT_SECONDS. Failures raise
PushDeliveryError; callers decide whether to log or propagate.

Usage:
    from notifications.push import PushClient

    client = PushClient()
    client.send(token, title="Alice", body="hi", data={"type": "new_message"}, badge=3)
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

import httpx
import jwt
from django.conf import settings
from django.core.cache import cache

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

EXPO_TOKEN_PREFIX = "ExponentPushToken"
FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
FCM_TOKEN_CACHE_KEY = "notifications:fcm_access_token"

# Assertion lifetime accepted by Google's token endpoint
ASSERTION_LIFETIME_SECONDS = 3600
# Refresh the cached access token this long before it expires
ACCESS_TOKEN_EXPIRY_MARGIN_SECONDS = 60

# Provider answers that mean the token will never work again
PERMANENT_FCM_ERRORS = {"UNREGISTERED", "NOT_FOUND"}
PERMANENT_EXPO_ERRORS = {"DeviceNotRegistered"}


class PushDeliveryError(ExternalServiceError):
    """
    A push send failed.

    Attributes:
        provider: "expo" or "fcm"
        status_code: HTTP status of the provider answer, if any
        is_permanent: True when retrying with the same token cannot succeed
    """

    default_error_code = "PUSH_DELIVERY_FAILED"

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        is_permanent: bool = False,
        details: dict[str, Any] | None = None,
    ):
        self.provider = provider
        self.status_code = status_code
        self.is_permanent = is_permanent
        super().__init__(
            message,
            details={
                "provider": provider,
                "status_code": status_code,
                "is_permanent": is_permanent,
                **(details or {}),
            },
        )


def is_expo_token(token: str) -> bool:
    return token.startswith(EXPO_TOKEN_PREFIX)


def stringify_data(data: dict[str, Any]) -> dict[str, str]:
    """FCM data payloads only accept string values; None becomes ""."""
    return {key: "" if value is None else str(value) for key, value in data.items()}


class PushClient:
    """
    Sends one notification to one device token.

    An httpx.Client may be injected (tests use httpx.MockTransport);
    otherwise a client with the configured timeout is created per call.
    """

    def __init__(self, http_client: httpx.Client | None = None):
        self._http_client = http_client

    def _client(self) -> httpx.Client:
        if self._http_client is not None:
            return self._http_client
        return httpx.Client(timeout=settings.PUSH_TIMEOUT_SECONDS)

    def _post(self, provider: str, url: str, **kwargs) -> httpx.Response:
        client = self._client()
        try:
            return client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise PushDeliveryError(
                f"{provider} request failed: {e}",
                provider=provider,
                details={"original_error": str(e)},
            ) from e
        finally:
            if client is not self._http_client:
                client.close()

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any],
        badge: int | None = None,
    ) -> str:
        """
        Send through the provider the token belongs to.

        Returns:
            The provider name used ("expo" or "fcm")

        Raises:
            PushDeliveryError: If the provider rejected or never answered
        """
        if is_expo_token(token):
            self.send_expo(token, title, body, data, badge=badge)
            return "expo"
        self.send_fcm(token, title, body, data, badge=badge)
        return "fcm"

    # -------------------------------------------------------------------------
    # Expo
    # -------------------------------------------------------------------------

    def send_expo(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any],
        badge: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "to": token,
            "title": title,
            "body": body,
            "data": data,
            "sound": "default",
        }
        if badge is not None:
            payload["badge"] = badge

        response = self._post(
            "expo",
            settings.EXPO_PUSH_URL,
            json=payload,
            headers={"Accept": "application/json"},
        )
        if response.status_code != 200:
            raise PushDeliveryError(
                f"Expo answered {response.status_code}",
                provider="expo",
                status_code=response.status_code,
                is_permanent=False,
                details={"response": response.text[:500]},
            )

        try:
            ticket = response.json().get("data") or {}
        except ValueError:
            ticket = {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            error = (ticket.get("details") or {}).get("error", "")
            raise PushDeliveryError(
                f"Expo rejected the notification: {ticket.get('message', error)}",
                provider="expo",
                status_code=response.status_code,
                is_permanent=error in PERMANENT_EXPO_ERRORS,
                details={"expo_error": error},
            )
        return ticket

    # -------------------------------------------------------------------------
    # FCM HTTP v1
    # -------------------------------------------------------------------------

    def send_fcm(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any],
        badge: int | None = None,
    ) -> dict[str, Any]:
        access_token = self.get_fcm_access_token()
        message: dict[str, Any] = {
            "token": token,
            "notification": {"title": title, "body": body},
            "data": stringify_data(data),
            "android": {"priority": "high"},
            "apns": {"headers": {"apns-priority": "10"}},
        }
        if badge is not None:
            message["apns"]["payload"] = {"aps": {"badge": badge}}

        response = self._post(
            "fcm",
            FCM_SEND_URL.format(project_id=settings.FIREBASE_PROJECT_ID),
            json={"message": message},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code != 200:
            try:
                status_name = response.json().get("error", {}).get("status", "")
            except ValueError:
                status_name = ""
            if response.status_code == 401:
                cache.delete(FCM_TOKEN_CACHE_KEY)
            raise PushDeliveryError(
                f"FCM answered {response.status_code} {status_name}".strip(),
                provider="fcm",
                status_code=response.status_code,
                is_permanent=status_name in PERMANENT_FCM_ERRORS,
                details={"fcm_status": status_name},
            )
        return response.json()

    def load_service_account(self) -> dict[str, Any]:
        path = settings.FIREBASE_SERVICE_ACCOUNT_FILE
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PushDeliveryError(
                f"Firebase service account file unusable: {path}",
                provider="fcm",
                details={"original_error": str(e)},
            ) from e

    def get_fcm_access_token(self) -> str:
        """Return a cached OAuth2 access token, minting a new one when needed."""
        cached = cache.get(FCM_TOKEN_CACHE_KEY)
        if cached:
            return cached

        account = self.load_service_account()
        token_uri = account.get("token_uri", GOOGLE_TOKEN_URI)
        now = int(time.time())
        assertion = jwt.encode(
            {
                "iss": account["client_email"],
                "scope": FCM_SCOPE,
                "aud": token_uri,
                "iat": now,
                "exp": now + ASSERTION_LIFETIME_SECONDS,
            },
            account["private_key"],
            algorithm="RS256",
            headers={"kid": account.get("private_key_id")},
        )

        response = self._post(
            "fcm",
            token_uri,
            data={
                "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                "assertion": assertion,
            },
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.status_code != 200 or "access_token" not in payload:
            raise PushDeliveryError(
                "Could not obtain an FCM access token",
                provider="fcm",
                status_code=response.status_code,
                details={"response": response.text[:500]},
            )

        expires_in = int(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS))
        cache.set(
            FCM_TOKEN_CACHE_KEY,
            payload["access_token"],
            timeout=max(expires_in - ACCESS_TOKEN_EXPIRY_MARGIN_SECONDS, 1),
        )
        logger.info("Minted a new FCM access token")
        return payload["access_token"]
