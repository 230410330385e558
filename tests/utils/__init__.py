"""Test utilities package."""

from tests.utils.cleanup import drop_project

__all__ = ["drop_project"]
