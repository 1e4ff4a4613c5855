import numpy as np

from PhyShift.TreeParser import TreeParser
from PhyShift.Settings import Settings
from PhyShift.Prior import Prior
from PhyShift.ParameterModel import TokenParameters
from PhyShift.Model import Model


# X is laid out first at [0, 3), then Y at [3, 7), Z at [7, 9), W at [9, 10)
BOUNDARY_NEWICK = "(X:3,(Z:2,W:1)Y:4);"

FIVE_TIP_NEWICK = "((A:1,B:2)AB:1.5,((C:0.5,D:1)CD:2,E:3)CDE:1);"


def build_model(newick: str, seed: int = 11, **settings) -> Model:
    tree = TreeParser.from_newick(newick)
    run_settings = Settings(settings)
    return Model(np.random.default_rng(seed),
                 tree,
                 run_settings,
                 Prior(run_settings),
                 TokenParameters((0.1,)))


def snapshot(model: Model) -> dict:
    """
    Everything a proposal may touch, compared by identity where it matters.
    """
    nodes = {}
    for node in model.tree.get_nodes():
        history = node.get_branch_history()
        nodes[node.index] = (
            id(history.get_node_event()),
            id(history.get_ancestral_node_event()),
            tuple(id(e) for e in history.get_events()),
        )
    events = tuple((id(e), e.get_map_time(), e.get_event_node().index)
                   for e in model.event_collection)
    return {"nodes": nodes, "events": events,
            "rate": model.get_event_rate()}
