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

Reader for event data files, which seed a chain with a saved event
configuration. Each non-blank line is one record:

    species1 species2 eventTime param1 param2 ...

species2 may be NA, in which case the event sits on the branch leading to the
tip species1. Otherwise it sits on the branch leading to the MRCA of the two
species. eventTime is measured from the root. Everything after the time is
handed to the parameter model untouched. Lines starting with '#' are skipped.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator

from .Tree import Node, Tree, TreeError

NA : str = "NA"


class EventDataError(Exception):
    """
    This exception is raised when an event data file is missing or contains
    a record that cannot be placed on the tree.
    """
    def __init__(self, message : str = "Malformed event data file") -> None:
        self.message = message
        super().__init__(self.message)


@dataclass
class EventRecord:
    """
    One line of an event data file.
    """
    species1 : str
    species2 : str
    event_time : float
    tokens : list[str] = field(default_factory = list)
    line_no : int = 0

    def resolve(self, tree : Tree) -> Node:
        """
        Find the node this record refers to.

        Args:
            tree (Tree): the tree to search.
        Raises:
            EventDataError: for malformed species pairs, or names that are not
                            in the tree.
        Returns:
            Node: the MRCA of both species, or the tip species1 when species2
                  is NA.
        """
        try:
            if self.species1 != NA and self.species2 != NA:
                return tree.get_node_mrca(self.species1, self.species2)
            if self.species1 != NA and self.species2 == NA:
                return tree.get_node_by_name(self.species1)
        except TreeError as err:
            raise EventDataError(f"line {self.line_no}: {err.message}") from err

        raise EventDataError(f"line {self.line_no}: Either both species are NA "
                             "or the first species is NA")

    def map_time(self, node : Node) -> float:
        """
        Convert the record's event time, measured from the root, to a map
        position on node's branch.
        """
        return node.get_map_start() + (node.get_time() - self.event_time)


def parse_event_data(lines : list[str]) -> Iterator[EventRecord]:
    """
    Parse event data records from lines of text.

    Args:
        lines (list[str]): file contents, one record per line.
    Raises:
        EventDataError: if a line has fewer than three fields, or a time that
                        is not a number.
    Returns:
        Iterator[EventRecord]: the records, in file order.
    """
    for line_no, line in enumerate(lines, start = 1):
        fields = line.split()
        if not fields or fields[0].startswith("#"):
            continue
        if len(fields) < 3:
            raise EventDataError(f"line {line_no}: expected 'species1 species2 "
                                 f"time ...', got '{line.strip()}'")
        try:
            event_time = float(fields[2])
        except ValueError as err:
            raise EventDataError(f"line {line_no}: '{fields[2]}' is not an "
                                 "event time") from err

        yield EventRecord(fields[0], fields[1], event_time, fields[3:], line_no)


def read_event_data_file(filename : str) -> list[EventRecord]:
    """
    Read every record of an event data file.

    Args:
        filename (str): path to the file.
    Raises:
        EventDataError: if the file cannot be opened or a line is malformed.
    Returns:
        list[EventRecord]: the records, in file order.
    """
    try:
        with open(filename) as handle:
            lines = handle.readlines()
    except OSError as err:
        raise EventDataError(f"<<{filename}>> is a bad file name.") from err

    return list(parse_event_data(lines))
