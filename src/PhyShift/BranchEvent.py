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

A branch event is a change point of the piecewise constant parameter process.
It sits at a map position on one branch and governs that branch from its
position tip-ward, and every descendant branch until another event is met.
"""

from __future__ import annotations
import itertools
import math
from typing import Any

from .Tree import Tree, Node, PositionOutOfRangeError

#########################
#### EXCEPTION CLASS ####
#########################

class BranchEventError(Exception):
    """
    This exception is raised when an event is moved or reverted in a way the
    single pending move protocol does not allow.
    """
    def __init__(self, message : str = "Error moving a branch event") -> None:
        self.message = message
        super().__init__(self.message)

#########################
#### HELPER FUNCTION ####
#########################

def reflect_map_time(map_time : float, total_map_length : float) -> float:
    """
    Reflecting boundary for local moves. A position that steps past either
    end of [0, total_map_length) bounces back into it, as many times as
    needed. A result that lands exactly on total_map_length is nudged to the
    largest float below it, since the map is half open.

    IE: with a total length of 10, 11.5 becomes 8.5 and -2 becomes 2.

    Args:
        map_time (float): A proposed map position, possibly off the map.
        total_map_length (float): Length of the map. Must be positive.
    Raises:
        PositionOutOfRangeError: if the map has no length.
    Returns:
        float: A position in [0, total_map_length).
    """
    if total_map_length <= 0:
        raise PositionOutOfRangeError("Cannot reflect onto an empty map")

    period = 2 * total_map_length
    folded = math.fmod(map_time, period)
    if folded < 0:
        folded += period
    if folded >= total_map_length:
        folded = period - folded
    if folded >= total_map_length:
        folded = math.nextafter(total_map_length, 0)
    return folded

####################
#### EVENT TYPE ####
####################

class BranchEvent:
    """
    A single event on the tree. Holds a map position, the node whose branch
    contains it, and an opaque parameter payload owned by the parameter
    model. Remembers at most one previous position so a rejected move can be
    undone exactly.
    """

    _serials = itertools.count()

    def __init__(self,
                 tree : Tree,
                 map_time : float = 0.0,
                 parameters : Any = None,
                 is_root : bool = False) -> None:
        """
        Create an event and attach it to the branch that contains map_time.
        The root event ignores map_time and sits at the root.

        Args:
            tree (Tree): The tree the event lives on.
            map_time (float, optional): Map position. Defaults to 0.0.
            parameters (Any, optional): Model specific payload.
                                        Defaults to None.
            is_root (bool, optional): Marks the single root event.
                                      Defaults to False.
        Raises:
            PositionOutOfRangeError: if map_time is not on any branch.
        Returns:
            N/A
        """
        self.tree : Tree = tree
        self.serial : int = next(BranchEvent._serials)
        self.parameters : Any = parameters
        self.is_root : bool = is_root

        if is_root:
            self.event_node : Node = tree.get_root()
            self.map_time : float = self.event_node.get_map_start()
        else:
            self.event_node : Node = tree.map_event_to_tree(map_time)
            self.map_time : float = float(map_time)

        self.old_map_time : float = None
        self.old_event_node : Node = None

    def get_map_time(self) -> float:
        return self.map_time

    def get_event_node(self) -> Node:
        return self.event_node

    def get_parameters(self) -> Any:
        return self.parameters

    def set_parameters(self, parameters : Any) -> None:
        self.parameters = parameters

    def has_old_map_position(self) -> bool:
        return self.old_event_node is not None

    def _relocate(self, new_map_time : float) -> None:
        if self.is_root:
            raise BranchEventError("The root event cannot be moved")
        if self.has_old_map_position():
            raise BranchEventError(f"{self} already has a move waiting to be "
                                   "accepted or reverted")

        # Look up the new node first so a bad position leaves us untouched
        new_node = self.tree.map_event_to_tree(new_map_time)

        self.old_map_time = self.map_time
        self.old_event_node = self.event_node
        self.map_time = float(new_map_time)
        self.event_node = new_node

    def move_event_local(self, step : float) -> None:
        """
        Shift the event by step along the map, reflecting at both ends of the
        map.

        Args:
            step (float): Signed displacement.
        Raises:
            BranchEventError: if this is the root event, or a previous move
                              has not been cleared or reverted.
        Returns:
            N/A
        """
        self._relocate(reflect_map_time(self.map_time + step,
                                        self.tree.get_total_map_length()))

    def move_event_global(self, new_map_time : float) -> None:
        """
        Place the event at a new position anywhere on the map.

        Args:
            new_map_time (float): The new position.
        Raises:
            BranchEventError: if this is the root event, or a previous move
                              has not been cleared or reverted.
            PositionOutOfRangeError: if the position is not on the tree.
        Returns:
            N/A
        """
        self._relocate(new_map_time)

    def revert_old_map_position(self) -> None:
        """
        Restore the position and node held before the last move, and forget
        them.

        Args:
            N/A
        Raises:
            BranchEventError: if no move is recorded.
        Returns:
            N/A
        """
        if not self.has_old_map_position():
            raise BranchEventError(f"{self} has no previous position to "
                                   "revert to")
        self.map_time = self.old_map_time
        self.event_node = self.old_event_node
        self.clear_old_map_position()

    def clear_old_map_position(self) -> None:
        self.old_map_time = None
        self.old_event_node = None

    def __repr__(self) -> str:
        if self.is_root:
            return "BranchEvent(root)"
        return f"BranchEvent({self.map_time:g} on {self.event_node.name!r})"
