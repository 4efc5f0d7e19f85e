"""
Pytest configuration and fixtures for marketplace onboarding tests.
"""

import os
import pytest
from unittest.mock import AsyncMock, MagicMock

# Set test environment before importing marketplace modules
os.environ["MARKETPLACE_ENV"] = "development"
os.environ["ONBOARDING_STORE"] = "memory"
os.environ["API_BASE_URL"] = "http://backend.test/api"

from onboarding.notifications import Notifier
from onboarding.persistence import MemoryStateStore
from onboarding.state import Tier
from onboarding.wizard import OnboardingWizard


VALID_BIO = (
    "SEBI registered analyst covering large-cap equities and index "
    "derivatives for over a decade."
)


@pytest.fixture
def store():
    """Fresh in-memory store for one user."""
    return MemoryStateStore("analyst-1")


@pytest.fixture
def wizard(store):
    return OnboardingWizard(store)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def profile_data():
    """Profile fields that pass the step 1 gate."""
    return {
        "display_name": "Priya Sharma",
        "bio": VALID_BIO,
        "specializations": ["Equity", "Derivatives"],
        "languages": ["English", "Hindi"],
        "years_of_experience": 12,
        "allow_free_audience": True,
    }


@pytest.fixture
def valid_tier():
    return Tier(
        id="tier-basic",
        name="Basic",
        features=["Daily market outlook", ""],
        weekly_price="149",
        monthly_price="699",
        yearly_price="6999",
    )


@pytest.fixture
def completed_wizard(wizard, profile_data, valid_tier):
    """Wizard with every step filled in, sitting on step 3."""
    wizard.update_form_data(profile_data)
    wizard.advance()
    wizard.update_form_data(pricing_tiers=[valid_tier])
    wizard.advance()
    wizard.update_form_data(
        sebi_number="INA000001234",
        sebi_certificate_url="https://files.test/cert.pdf",
    )
    return wizard


@pytest.fixture
def mock_analysts():
    """AnalystService double; every call succeeds."""
    analysts = MagicMock()
    analysts.setup_profile = AsyncMock(return_value={"success": True})
    analysts.upload_profile_photo = AsyncMock(return_value="https://files.test/photo.png")
    analysts.upload_certificate = AsyncMock(return_value="https://files.test/cert.pdf")
    return analysts


@pytest.fixture
def mock_identity():
    identity = MagicMock()
    identity.get_current_user = AsyncMock()
    return identity


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client
