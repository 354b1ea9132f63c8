import os
import re

import pytest

tomllib = pytest.importorskip("tomllib")

PYPROJECT = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "pyproject.toml")


def requirement_names(requirements):
    return {re.split(r"[\[<>=!~ ]", r, maxsplit=1)[0].lower() for r in requirements}


def test_test_clients_stay_out_of_runtime_dependencies():
    with open(PYPROJECT, "rb") as f:
        project = tomllib.load(f)["project"]

    runtime = requirement_names(project["dependencies"])
    test_extra = requirement_names(project["optional-dependencies"]["test"])

    assert "httpx" not in runtime
    assert {"httpx", "pytest", "pytest-asyncio"} <= test_extra
    assert not {"pytest", "pytest-asyncio"} & runtime
