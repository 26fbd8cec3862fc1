"""Shared fixtures for exporter tests."""

from unittest.mock import MagicMock

import pytest
import requests

from octopus_exporter.config import Settings


@pytest.fixture
def settings():
    return Settings(
        api_key="sk_live_test",
        mpan="1200000000000",
        electricity_meter="21L1234567",
        mprn="1234567890",
        gas_meter="G4A12345",
    )


@pytest.fixture
def session():
    mock = MagicMock(spec=requests.Session)
    mock.headers = {}
    return mock
