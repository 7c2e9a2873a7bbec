import json
import random
from pathlib import Path

import pytest

from plantguesser.reference import ReferenceData

from factories import ManualExecutor


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def executor():
    return ManualExecutor()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """A small reference data directory."""
    (tmp_path / "locations.json").write_text(json.dumps({
        "Astoria": "City",
        "Asia": "Continent",
        "Oregon": "State",
        "Oregon Dunes": None,
        "Orcas Island": "Island",
        "Portland": "City",
        "Oregonia": "Mystery Type",
    }))
    (tmp_path / "orders.json").write_text(json.dumps(["Fagales", "Rosales", "Agaricales"]))
    (tmp_path / "families.json").write_text(json.dumps(["Fagaceae", "Betulaceae", "Rosaceae"]))
    (tmp_path / "genera.json").write_text(json.dumps(
        ["Quercus", "Rosa", "Rosmarinus", "Amanita", "Primrosa"]
    ))
    (tmp_path / "genus_taxonomy.json").write_text(json.dumps({
        "Quercus": {"order": "Fagales", "family": "Fagaceae"},
    }))
    return tmp_path


@pytest.fixture
def reference(data_dir: Path) -> ReferenceData:
    return ReferenceData.from_directory(data_dir)
