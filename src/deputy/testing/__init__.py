"""Test utilities for deputy applications.

::

    from deputy.testing import TestClient
"""

from deputy.testing.client import TestClient

__all__ = ["TestClient"]
