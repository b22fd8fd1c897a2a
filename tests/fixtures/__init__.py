"""Test fixtures for Formtrack."""

from tests.fixtures.mocks import FakeEmailSender

__all__ = ["FakeEmailSender"]
