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
"""

from __future__ import annotations
from typing import TYPE_CHECKING
from sortedcontainers import SortedKeyList

if TYPE_CHECKING:
    from .BranchEvent import BranchEvent
    from .Tree import Node


class EventNotFoundError(Exception):
    """
    This exception is raised when an event is expected to be part of a branch
    history or an event index, but is not.
    """
    def __init__(self, message : str = "Event could not be found") -> None:
        self.message = message
        super().__init__(self.message)


def event_order(event : BranchEvent) -> tuple[float, int]:
    """
    Sort key for events: map position, root-ward first, with creation order
    breaking ties.
    """
    return (event.map_time, event.serial)


class BranchHistory:
    """
    The ledger of events that sit on one branch, plus two cached values
    maintained by the model's propagation routine:

    - the node event, the event that governs the node at the tip-ward end of
      this branch. It is the tip-most event on the branch if there is one,
      otherwise it is the ancestor's node event.
    - the ancestral node event, the node event last pushed down from the
      ancestor.
    """

    def __init__(self, node : Node) -> None:
        """
        Initialize an empty branch history.

        Args:
            node (Node): The node whose branch this history describes.
        Returns:
            N/A
        """
        self.node : Node = node
        self.events : SortedKeyList = SortedKeyList(key = event_order)
        self.node_event : BranchEvent = None
        self.ancestral_node_event : BranchEvent = None

    def add_event_to_branch_history(self, event : BranchEvent) -> None:
        """
        Insert an event in map order. If it becomes the tip-most event of the
        branch, it becomes the node event as well.

        Args:
            event (BranchEvent): An event whose position is on this branch.
        Returns:
            N/A
        """
        self.events.add(event)
        if self.events[-1] is event:
            self.node_event = event

    def pop_event_off_branch_history(self, event : BranchEvent) -> None:
        """
        Remove an event from this branch.

        Args:
            event (BranchEvent): An event on this branch.
        Raises:
            EventNotFoundError: if the event is not on this branch.
        Returns:
            N/A
        """
        try:
            self.events.remove(event)
        except ValueError:
            raise EventNotFoundError(f"{event} is not on the branch of "
                                     f"{self.node}") from None

    def get_last_event(self, event : BranchEvent = None) -> BranchEvent:
        """
        With no argument, get the tip-most event on this branch (None if the
        branch is empty). Given an event on this branch, get the event
        immediately root-ward of it; for the first event on the branch this is
        the ancestral node event.

        Args:
            event (BranchEvent, optional): An event on this branch.
                                           Defaults to None.
        Raises:
            EventNotFoundError: if the given event is not on this branch.
        Returns:
            BranchEvent: The event described above.
        """
        if event is None:
            return self.events[-1] if self.events else None

        if event not in self:
            raise EventNotFoundError(f"{event} is not on the branch of "
                                     f"{self.node}")

        where = self.events.index(event)
        if where == 0:
            return self.ancestral_node_event
        return self.events[where - 1]

    def set_node_event(self, event : BranchEvent) -> None:
        self.node_event = event

    def get_node_event(self) -> BranchEvent:
        """
        The effective event governing this node.
        """
        return self.node_event

    def set_ancestral_node_event(self, event : BranchEvent) -> None:
        self.ancestral_node_event = event

    def get_ancestral_node_event(self) -> BranchEvent:
        return self.ancestral_node_event

    def get_number_of_branch_events(self) -> int:
        return len(self.events)

    def get_events(self) -> list[BranchEvent]:
        return list(self.events)

    def __contains__(self, event : BranchEvent) -> bool:
        return event in self.events

    def __len__(self) -> int:
        return len(self.events)
