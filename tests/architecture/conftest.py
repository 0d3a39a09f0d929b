"""Shared fixtures for architecture tests."""

import os

import pytest
from pytestarch import (
    EvaluableArchitecture,
    LayeredArchitecture,
    get_evaluable_architecture,
)

SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "src"))
PACKAGE = "src.casebuilder"


@pytest.fixture(scope="session")
def evaluable() -> EvaluableArchitecture:
    """Build evaluable architecture from src/casebuilder."""
    return get_evaluable_architecture(SRC_DIR, os.path.join(SRC_DIR, "casebuilder"))


@pytest.fixture(scope="session")
def layers() -> LayeredArchitecture:
    """Domain, the JSON-schema validators, the editor services and the adapters.

    PyTestArch resolves module names relative to the source root,
    so modules appear as 'src.casebuilder.domain', etc.
    """
    return (
        LayeredArchitecture()
        .layer("domain")
        .containing_modules([f"{PACKAGE}.domain"])
        .layer("schemas")
        .containing_modules([f"{PACKAGE}.schemas"])
        .layer("application")
        .containing_modules([f"{PACKAGE}.application"])
        .layer("infrastructure")
        .containing_modules([f"{PACKAGE}.infrastructure"])
    )
