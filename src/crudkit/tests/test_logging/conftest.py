import pytest

from crudkit.config.settings import Settings
from crudkit.core.logging.builder import setup_logging


@pytest.fixture
def restore_logging():
    """Re-apply the suite's logging config after a test that installs its own."""
    yield
    setup_logging(Settings(ENV="testing", LOG_FORMAT="text", LOG_LEVEL="DEBUG", LOG_TO_STDOUT=True))
