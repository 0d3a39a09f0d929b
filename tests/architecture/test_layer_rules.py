"""
Layer Rules.

Permanent tests enforcing dependency direction in casebuilder:
- Domain must not access the schemas, the editor services or the adapters
- Application reaches stores and assistants only through domain ports
- The tree and reference helpers stay pure functions over the models
"""

import ast
from pathlib import Path

import pytest
from pytestarch import LayerRule, Rule

pytestmark = pytest.mark.architecture

DOMAIN_ROOT = Path(__file__).parent.parent.parent / "src" / "casebuilder" / "domain"

# Model-only helpers: they compute snapshots and never touch ports or I/O.
PURE_MODULES = ("tree.py", "references.py", "validation.py")
PURE_ALLOWED_IMPORTS = {
    "casebuilder.domain.exceptions",
    "casebuilder.domain.models",
    "__future__",
    "collections.abc",
    "dataclasses",
    "typing",
}


def _imported_modules(path: Path) -> set[str]:
    modules = set()
    for node in ast.walk(ast.parse(path.read_text())):
        if isinstance(node, ast.ImportFrom) and node.module:
            if node.module == "casebuilder.domain":
                modules.update(f"casebuilder.domain.{alias.name}" for alias in node.names)
            else:
                modules.add(node.module)
        elif isinstance(node, ast.Import):
            modules.update(alias.name for alias in node.names)
    return modules


class TestLayerRules:
    """The editor engine talks to stores and assistants only through ports."""

    @pytest.mark.parametrize("outer", ["schemas", "application", "infrastructure"])
    def test_domain_does_not_access_outer_layers(self, evaluable, layers, outer):
        rule = (
            LayerRule()
            .based_on(layers)
            .layers_that()
            .are_named("domain")
            .should_not()
            .access_layers_that()
            .are_named(outer)
        )
        rule.assert_applies(evaluable)

    def test_application_does_not_access_infrastructure(self, evaluable, layers):
        """WorkflowEditor and ChatSession depend on ports, not on httpx or openai adapters."""
        rule = (
            LayerRule()
            .based_on(layers)
            .layers_that()
            .are_named("application")
            .should_not()
            .access_layers_that()
            .are_named("infrastructure")
        )
        rule.assert_applies(evaluable)


class TestModuleRules:
    def test_reconciler_does_not_import_editor(self, evaluable):
        """The stream reconciler reloads through a callback, never the editor itself."""
        rule = (
            Rule()
            .modules_that()
            .are_named("src.casebuilder.application.stream_reconciler")
            .should_not()
            .import_modules_that()
            .are_named("src.casebuilder.application.editor")
        )
        rule.assert_applies(evaluable)

    def test_ledger_does_not_import_editor(self, evaluable):
        rule = (
            Rule()
            .modules_that()
            .are_named("src.casebuilder.application.checkpoint_ledger")
            .should_not()
            .import_modules_that()
            .are_named("src.casebuilder.application.editor")
        )
        rule.assert_applies(evaluable)

    @pytest.mark.parametrize("module", PURE_MODULES)
    def test_pure_helpers_import_only_models(self, module):
        """tree, references and validation depend on models and exceptions alone."""
        unexpected = _imported_modules(DOMAIN_ROOT / module) - PURE_ALLOWED_IMPORTS
        assert not unexpected, f"domain/{module} imports {sorted(unexpected)}"
