import pytest

from contract_guard.store import load_validator


@pytest.fixture(scope="session")
def state():
    """Validator state over the bundled Petstore document."""
    return load_validator()
