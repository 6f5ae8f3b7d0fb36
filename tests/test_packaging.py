from __future__ import annotations

from pathlib import Path
import re

BASE_DIR = Path(__file__).resolve().parents[1]


def test_package_readme_is_project_readme() -> None:
    pyproject = (BASE_DIR / "pyproject.toml").read_text(encoding="utf-8")
    match = re.search(r'^readme = "([^"]+)"', pyproject, flags=re.MULTILINE)

    assert match is not None
    assert match.group(1) == "README.md"
    assert (BASE_DIR / "README.md").read_text(encoding="utf-8").startswith("# vinotree")
