"""
Test configuration and fixtures for authentication tests.
"""

import pytest

from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """A user as provisioned by the identity provider (no local password)."""
    return UserFactory(name="Ada Lovelace")
