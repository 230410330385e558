"""Test data factories using polyfactory."""

from tests.factories.project import TEST_API_KEY, ProjectFactory

__all__ = ["TEST_API_KEY", "ProjectFactory"]
