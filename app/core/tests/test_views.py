"""
Tests for core views and response helpers.
"""

import pytest
from django.db import DatabaseError
from rest_framework import status

from core.services import ServiceResult
from core.views import service_error_response


class TestServiceErrorResponse:
    """
    Tests for service_error_response().

    Verifies:
    - Permission codes answer 403
    - NOT_FOUND answers 404
    - Anything else answers 400
    """

    @pytest.mark.parametrize("code", ["PERMISSION_DENIED", "NOT_MEMBER", "NOT_PARTY"])
    def test_permission_codes_are_403(self, code):
        response = service_error_response(ServiceResult.failure("No", error_code=code))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data == {"error": "No", "error_code": code}

    def test_not_found_is_404(self):
        response = service_error_response(ServiceResult.failure("Gone", error_code="NOT_FOUND"))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.parametrize("code", ["VALIDATION_ERROR", "EMAIL_EXISTS", None])
    def test_other_codes_are_400(self, code):
        response = service_error_response(ServiceResult.failure("Bad", error_code=code))

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestHealthCheck:
    """
    Tests for GET /health/.

    Verifies:
    - Healthy when the database answers
    - 503 when the database is unreachable
    """

    def test_healthy(self, client, db):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected", "cache": "connected"}

    def test_database_down_is_503(self, client, db, mocker):
        cursor = mocker.patch("core.views.connection.cursor")
        cursor.side_effect = DatabaseError("down")

        response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
