#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyShift --
##  Library for Branch Event Histories on Phylogenetic Trees
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Author : Mark Kessler
Last Edit : 10/16/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]

Fixed rooted binary tree with a global one dimensional "map" coordinate.

Every branch occupies the half open interval [map_start, map_end) of the map.
Intervals are laid out in preorder (left descendant before right descendant),
so the map is the concatenation of every branch in the tree, and its total
length is the sum of all branch lengths. The root has no branch of its own and
occupies the empty interval [0, 0).
"""

from __future__ import annotations
from bisect import bisect_right
from typing import Iterator
import networkx as nx

from .BranchHistory import BranchHistory

#############################
#### EXCEPTION SPECIFICS ####
#############################

class TreeError(Exception):
    """
    This exception is raised when a tree is malformed, or if a tree query
    fails.
    """
    def __init__(self, message : str = "Error with a Tree instance") -> None:
        self.message = message
        super().__init__(self.message)

class PositionOutOfRangeError(Exception):
    """
    This exception is raised when a map position does not fall inside any
    branch of the tree.
    """
    def __init__(self,
                 message : str = "Map position lies outside of the tree") -> None:
        self.message = message
        super().__init__(self.message)

###############
#### NODES ####
###############

class Node:
    """
    A node of a rooted binary tree. A node also represents the branch that
    connects it to its ancestor, and owns the branch history of events that
    sit on that branch.
    """

    def __init__(self,
                 name : str = None,
                 branch_length : float = 0.0,
                 lf_desc : Node = None,
                 rt_desc : Node = None) -> None:
        """
        Initialize a node. Descendants are given both or neither.

        Args:
            name (str, optional): Node name. Tips must be named.
                                  Defaults to None.
            branch_length (float, optional): Length of the branch that leads
                                             to this node. Defaults to 0.0.
            lf_desc (Node, optional): Left descendant. Defaults to None.
            rt_desc (Node, optional): Right descendant. Defaults to None.
        Returns:
            N/A
        """
        if (lf_desc is None) != (rt_desc is None):
            raise TreeError(f"Node '{name}' must have two descendants or none")
        if branch_length < 0:
            raise TreeError(f"Node '{name}' has a negative branch length")

        self.name : str = name
        self.branch_length : float = float(branch_length)
        self.lf_desc : Node = lf_desc
        self.rt_desc : Node = rt_desc
        self.anc : Node = None

        # Geometry, filled in by Tree
        self.map_start : float = 0.0
        self.map_end : float = 0.0
        self.time : float = 0.0
        self.index : int = -1

        self.history : BranchHistory = BranchHistory(self)

        for desc in (lf_desc, rt_desc):
            if desc is not None:
                desc.anc = self

    def get_name(self) -> str:
        return self.name

    def get_anc(self) -> Node:
        return self.anc

    def get_lf_desc(self) -> Node:
        return self.lf_desc

    def get_rt_desc(self) -> Node:
        return self.rt_desc

    def get_branch_length(self) -> float:
        return self.branch_length

    def get_map_start(self) -> float:
        return self.map_start

    def get_map_end(self) -> float:
        return self.map_end

    def get_time(self) -> float:
        """
        Get the time of this node, measured as the summed branch length from
        the root. The root has time 0, tips have the largest times.

        Args:
            N/A
        Returns:
            float: Node time.
        """
        return self.time

    def get_branch_history(self) -> BranchHistory:
        return self.history

    def is_tip(self) -> bool:
        return self.lf_desc is None

    def children(self) -> list[Node]:
        if self.is_tip():
            return []
        return [self.lf_desc, self.rt_desc]

    def contains(self, map_time : float) -> bool:
        """
        Check whether a map position sits on this node's branch.

        Args:
            map_time (float): A map position.
        Returns:
            bool: True if map_start <= map_time < map_end.
        """
        return self.map_start <= map_time < self.map_end

    def __repr__(self) -> str:
        return (f"Node({self.name!r}, [{self.map_start:g}, "
                f"{self.map_end:g}))")

##############
#### TREE ####
##############

class Tree:
    """
    Fixed rooted binary tree. Topology and geometry never change after
    construction; only the events attached to branch histories do.
    """

    def __init__(self, root : Node) -> None:
        """
        Build a tree from its root node, assigning node times, arena indices
        and map intervals.

        Args:
            root (Node): The root of a fully linked binary tree.
        Raises:
            TreeError: if the root has an ancestor or tip names are missing
                       or repeated.
        Returns:
            N/A
        """
        if root.anc is not None:
            raise TreeError("The root of a tree cannot have an ancestor")

        self.root : Node = root
        self.nodes : list[Node] = list(self._preorder(root))
        self.tips : dict[str, Node] = {}
        self.names : dict[str, Node] = {}

        self._set_tree_map()

        for node in self.nodes:
            if node.is_tip():
                if node.name is None:
                    raise TreeError("Every tip of a tree must be named")
                if node.name in self.tips:
                    raise TreeError(f"Tip name '{node.name}' is not unique")
                self.tips[node.name] = node
            if node.name is not None:
                self.names.setdefault(node.name, node)

        # Branches with a positive length, in map order, for position lookup
        self._mapped : list[Node] = [node for node in self.nodes
                                     if node.map_end > node.map_start]
        self._starts : list[float] = [node.map_start for node in self._mapped]

    @staticmethod
    def _preorder(root : Node) -> Iterator[Node]:
        stack = [root]
        while stack:
            node = stack.pop()
            yield node
            if not node.is_tip():
                stack.append(node.rt_desc)
                stack.append(node.lf_desc)

    def _set_tree_map(self) -> None:
        """
        Lay out every branch on the map in preorder. The root branch is
        ignored, so the root spans [0, 0).
        """
        running = 0.0
        for index, node in enumerate(self.nodes):
            node.index = index
            if node is self.root:
                node.time = 0.0
                node.map_start = 0.0
                node.map_end = 0.0
                continue
            node.time = node.anc.time + node.branch_length
            node.map_start = running
            node.map_end = running + node.branch_length
            running = node.map_end

        self.total_map_length : float = running

    def get_root(self) -> Node:
        return self.root

    def get_nodes(self) -> list[Node]:
        """
        Args:
            N/A
        Returns:
            list[Node]: All nodes in preorder. A node's position in this list
                        is its index.
        """
        return self.nodes

    def get_tips(self) -> list[Node]:
        return list(self.tips.values())

    def postorder(self) -> list[Node]:
        return list(reversed(self.nodes))

    def get_total_map_length(self) -> float:
        return self.total_map_length

    def max_root_to_tip_length(self) -> float:
        """
        The largest summed branch length between the root and any tip.

        Args:
            N/A
        Returns:
            float: max root to tip distance.
        """
        return max(tip.time for tip in self.tips.values())

    def get_node_by_name(self, name : str) -> Node:
        """
        Look up a node by name (tips first, then named internal nodes).

        Args:
            name (str): A node name.
        Raises:
            TreeError: if no node carries the name.
        Returns:
            Node: The named node.
        """
        if name in self.tips:
            return self.tips[name]
        if name in self.names:
            return self.names[name]
        raise TreeError(f"No node named '{name}' in the tree")

    def get_node_mrca(self, name1 : str, name2 : str) -> Node:
        """
        Find the most recent common ancestor of two named nodes.

        Args:
            name1 (str): First node name.
            name2 (str): Second node name.
        Raises:
            TreeError: if either name does not resolve.
        Returns:
            Node: The MRCA.
        """
        first = self.get_node_by_name(name1)
        second = self.get_node_by_name(name2)

        ancestors : set[Node] = set()
        node = first
        while node is not None:
            ancestors.add(node)
            node = node.anc

        node = second
        while node not in ancestors:
            node = node.anc
        return node

    def map_event_to_tree(self, map_time : float) -> Node:
        """
        Find the node whose branch contains a map position.

        Args:
            map_time (float): A map position.
        Raises:
            PositionOutOfRangeError: if the position is not on any branch.
        Returns:
            Node: The node that owns the position.
        """
        where = bisect_right(self._starts, map_time) - 1
        if where < 0 or not self._mapped[where].contains(map_time):
            raise PositionOutOfRangeError(f"Map position {map_time} is not in "
                                          f"[0, {self.total_map_length})")
        return self._mapped[where]

    def to_networkx(self) -> nx.DiGraph:
        """
        Export the tree as a directed graph, with each node annotated by its
        geometry and the number of events on its branch.

        Args:
            N/A
        Returns:
            nx.DiGraph: edges point from ancestor to descendant.
        """
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(node.index,
                           name = node.name,
                           map_start = node.map_start,
                           map_end = node.map_end,
                           time = node.time,
                           events = node.history.get_number_of_branch_events())
            if node.anc is not None:
                graph.add_edge(node.anc.index, node.index,
                               length = node.branch_length)
        return graph
