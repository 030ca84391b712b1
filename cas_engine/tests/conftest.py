"""Shared fixtures for the CAS engine tests."""

import pytest

from samples import CAMS_TEXT, CDSL_ACCOUNT, CDSL_HEADER, NSDL_TEXT, SECOND_CDSL_ACCOUNT


@pytest.fixture
def cdsl_text():
    return CDSL_HEADER + CDSL_ACCOUNT


@pytest.fixture
def two_account_text():
    return CDSL_HEADER + CDSL_ACCOUNT + SECOND_CDSL_ACCOUNT


@pytest.fixture
def nsdl_text():
    return NSDL_TEXT


@pytest.fixture
def cams_text():
    return CAMS_TEXT
