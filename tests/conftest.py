"""Pytest configuration and shared fixtures."""

import os

import pytest

TESTDATA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'testdata', 'bpmetadata')


@pytest.fixture
def tf_testdata() -> str:
    """Directory holding the Terraform fixtures."""
    return os.path.join(TESTDATA_PATH, 'tf')


@pytest.fixture
def metadata_testdata() -> str:
    """Directory holding the metadata.yaml fixtures."""
    return os.path.join(TESTDATA_PATH, 'metadata')
