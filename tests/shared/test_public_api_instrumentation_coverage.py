"""Static checks for public API invocation instrumentation decorators.

Every registered service implementation must decorate each public method of
its abstract Service API with ``@public_api_instrumented``.
"""

from __future__ import annotations

import ast
import importlib
from pathlib import Path

from packages.herald_shared.manifest import ServiceManifest, get_registry
from resources.substrates.postgres.bootstrap import COMPONENT_MODULES

_REPO_ROOT = Path(__file__).resolve().parents[2]


def test_registered_services_decorate_public_api_methods() -> None:
    """Require instrumentation on all public methods declared in Service APIs."""
    failures: list[str] = []
    for service in _load_services():
        for root in sorted(str(item) for item in service.module_roots):
            package_dir = _REPO_ROOT.joinpath(*root.split("."))
            contract = _public_method_names(package_dir / "service.py")
            decorated = _decorated_public_api_methods(package_dir / "implementation.py")
            missing = sorted(contract - decorated)
            if missing:
                failures.append(f"{service.id}: {missing}")

    assert not failures, (
        "Missing @public_api_instrumented on Service public API methods:\n"
        + "\n".join(failures)
    )


def test_component_module_list_matches_registered_components() -> None:
    """Bootstrap imports exactly the component declarations on disk."""
    on_disk = sorted(
        ".".join(path.relative_to(_REPO_ROOT).with_suffix("").parts)
        for root in ("resources", "services")
        for path in (_REPO_ROOT / root).rglob("component.py")
    )
    assert sorted(COMPONENT_MODULES) == on_disk


def _load_services() -> tuple[ServiceManifest, ...]:
    """Import component manifests and return registered service manifests."""
    for module in COMPONENT_MODULES:
        importlib.import_module(module)
    registry = get_registry()
    registry.assert_valid()
    services = registry.list_services()
    assert services, "no services registered"
    return services


def _abstract_class(tree: ast.Module) -> ast.ClassDef:
    for node in tree.body:
        if isinstance(node, ast.ClassDef) and any(
            isinstance(base, ast.Name) and base.id == "ABC" for base in node.bases
        ):
            return node
    raise AssertionError("no ABC service contract found")


def _public_method_names(file_path: Path) -> set[str]:
    """Return non-private method names declared on the abstract contract."""
    class_node = _abstract_class(ast.parse(file_path.read_text(encoding="utf-8")))
    return {
        node.name
        for node in class_node.body
        if isinstance(node, ast.FunctionDef) and not node.name.startswith("_")
    }


def _decorated_public_api_methods(file_path: Path) -> set[str]:
    """Return method names decorated with ``@public_api_instrumented``."""
    tree = ast.parse(file_path.read_text(encoding="utf-8"))
    names: set[str] = set()
    for class_node in (n for n in tree.body if isinstance(n, ast.ClassDef)):
        for node in class_node.body:
            if isinstance(node, ast.FunctionDef) and _has_public_api_instrumented(node):
                names.add(node.name)
    return names


def _has_public_api_instrumented(node: ast.FunctionDef) -> bool:
    for decorator in node.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if isinstance(target, ast.Name) and target.id == "public_api_instrumented":
            return True
    return False
