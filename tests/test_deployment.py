import ast
import json
import sys
from pathlib import Path

from app.core.settings import settings

ROOT = Path(__file__).resolve().parent.parent

# Import roots of the distributions declared in pyproject.toml
DECLARED_IMPORTS = {
    "app",
    "fastapi",
    "uvicorn",
    "pydantic",
    "pydantic_settings",
    "firebase_admin",
    "google",
    "requests",
}


def composite_indexes():
    with open(ROOT / "firestore.indexes.json", encoding="utf-8") as f:
        data = json.load(f)
    return [
        [(field["fieldPath"], field["order"]) for field in index["fields"]]
        for index in data["indexes"]
        if index["collectionGroup"] == settings.COMPLAINTS_COLLECTION
    ]


def test_history_range_query_has_a_composite_index():
    assert [("created_at", "ASCENDING"), ("location.lat", "ASCENDING")] in composite_indexes()


def test_filtered_admin_listing_has_a_composite_index():
    assert [("status", "ASCENDING"), ("created_at", "DESCENDING")] in composite_indexes()


def test_firebase_config_deploys_the_indexes():
    with open(ROOT / "firebase.json", encoding="utf-8") as f:
        assert json.load(f)["firestore"]["indexes"] == "firestore.indexes.json"


def imported_roots(path):
    tree = ast.parse(path.read_text(encoding="utf-8"))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name.split(".")[0]
        elif isinstance(node, ast.ImportFrom) and node.level == 0:
            yield node.module.split(".")[0]


def test_app_imports_only_declared_dependencies():
    undeclared = {
        (str(path.relative_to(ROOT)), root)
        for path in (ROOT / "app").rglob("*.py")
        for root in imported_roots(path)
        if root not in DECLARED_IMPORTS and root not in sys.stdlib_module_names
    }
    assert undeclared == set()
