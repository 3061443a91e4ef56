"""
Factory Boy factories for authentication models.

Provides realistic test data generation for:
- User: Email-identified chat user, optionally with a push token

Usage:
    from authentication.tests.factories import UserFactory

    # Create a user with default values
    user = UserFactory()

    # Create a user who can receive push notifications
    user = UserFactory(push_token="ExponentPushToken[abc]")

    # Create an application admin
    user = UserFactory(is_admin=True)
"""

import factory

from authentication.models import User


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active users with a display name and no push token.

    Examples:
        # Basic user
        user = UserFactory()

        # Named user
        user = UserFactory(name="Alice")

        # Inactive user (deactivated)
        user = UserFactory(is_active=False)
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    name = factory.Sequence(lambda n: f"User {n}")
    push_token = None
    is_admin = False
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )
