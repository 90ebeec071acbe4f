"""Common test fixtures and configuration for pytest.

Fixtures defined in tests/fixtures are imported here so they are available to every test.
"""

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.common import (  # noqa
    apollo_person,
    credential_store,
    fake_clock,
    fake_destination,
)
