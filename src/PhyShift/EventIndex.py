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
from typing import Iterator, TYPE_CHECKING
import numpy as np
from sortedcontainers import SortedKeyList

from .BranchHistory import EventNotFoundError, event_order

if TYPE_CHECKING:
    from .BranchEvent import BranchEvent


class EmptyIndexError(Exception):
    """
    This exception is raised when a random event is requested from an index
    that holds no events.
    """
    def __init__(self, message : str = "There are no events to choose from") -> None:
        self.message = message
        super().__init__(self.message)


class EventIndex:
    """
    Chain wide index of every non-root event, ordered by map position.

    The index does not own events, branch histories do. Because it is keyed
    on map position, an event must be removed before its position changes and
    inserted again afterwards.
    """

    def __init__(self) -> None:
        self.events : SortedKeyList = SortedKeyList(key = event_order)

    def insert(self, event : BranchEvent) -> None:
        """
        Args:
            event (BranchEvent): A non-root event.
        Returns:
            N/A
        """
        self.events.add(event)

    def remove(self, event : BranchEvent) -> None:
        """
        Args:
            event (BranchEvent): An indexed event.
        Raises:
            EventNotFoundError: if the event is not indexed.
        Returns:
            N/A
        """
        try:
            self.events.remove(event)
        except ValueError:
            raise EventNotFoundError(f"{event} is not in the event "
                                     "index") from None

    def size(self) -> int:
        return len(self.events)

    def pick_uniform(self, rng : np.random.Generator) -> BranchEvent:
        """
        Select an event with probability 1 / size().

        Args:
            rng (np.random.Generator): the result of a .default_rng(seed) call
        Raises:
            EmptyIndexError: if there are no events.
        Returns:
            BranchEvent: the chosen event.
        """
        if not self.events:
            raise EmptyIndexError("Number of events is zero")
        return self.events[int(rng.integers(0, len(self.events)))]

    def __contains__(self, event : BranchEvent) -> bool:
        return event in self.events

    def __iter__(self) -> Iterator[BranchEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)
