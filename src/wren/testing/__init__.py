"""Test utilities for wren applications.

::

    from wren.testing import TestClient
"""

from wren.testing.client import TestClient

__all__ = ["TestClient"]
