import logging
import pytest

from PhyShift.Tree import Tree
from PhyShift.TreeParser import TreeParser
from PhyShift.Model import Model
from helpers import BOUNDARY_NEWICK, FIVE_TIP_NEWICK, build_model


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@pytest.fixture
def boundary_tree() -> Tree:
    return TreeParser.from_newick(BOUNDARY_NEWICK)


@pytest.fixture
def boundary_model() -> Model:
    return build_model(BOUNDARY_NEWICK)


@pytest.fixture
def five_tip_model() -> Model:
    return build_model(FIVE_TIP_NEWICK, seed=2024)
