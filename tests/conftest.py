from __future__ import annotations

from importlib import resources
from pathlib import Path

import pytest
from typer.testing import CliRunner

from graph_adapters.core import Item

ACCOUNT = "052392120703"
REGION = "eu-west-1"
SCOPE = f"{ACCOUNT}.{REGION}"


@pytest.fixture(scope="session")
def registry_file() -> Path:
    adapters_pkg = "graph_adapters.resources.adapters"
    with resources.as_file(resources.files(adapters_pkg) / "core.yaml") as ref:
        return Path(ref)


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def make_item():
    def _make(name: str, *, item_type: str = "ecs-cluster", scope: str = SCOPE, **attributes) -> Item:
        return Item(type=item_type, unique_attribute="name", attributes={"name": name, **attributes}, scope=scope)

    return _make
