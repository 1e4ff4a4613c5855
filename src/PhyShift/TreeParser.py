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
import logging
from io import StringIO
from typing import Any
from Bio import Phylo

from .Tree import Node, Tree, TreeError

logger = logging.getLogger(__name__)

#####################
#### Error Class ####
#####################

class TreeParserError(Exception):
    """
    Error that is raised whenever an input file or newick string contains
    issues that disallow a proper parse of a tree.
    """
    def __init__(self, message : str = "Something went wrong \
                                        parsing a tree") -> None:
        self.message = message
        super().__init__(self.message)

#############################
#### Newick Tree Parser #####
#############################

class TreeParser:
    """
    Builds Tree objects from newick strings or newick files, through the
    biopython Phylo reader.
    """

    @staticmethod
    def from_newick(newick : str) -> Tree:
        """
        Parse a newick string.

        Args:
            newick (str): A newick string with branch lengths.
        Raises:
            TreeParserError: if the string cannot be parsed, or does not
                             describe a rooted binary tree with branch
                             lengths.
        Returns:
            Tree: the parsed tree.
        """
        try:
            bio_tree = Phylo.read(StringIO(newick.strip()), "newick")
        except Exception as err:
            raise TreeParserError(f"Could not parse newick string: "
                                  f"{err}") from err
        return TreeParser.parse_tree_block(bio_tree)

    @staticmethod
    def from_file(filename : str) -> Tree:
        """
        Parse the first tree of a newick file.

        Args:
            filename (str): path to a newick file.
        Raises:
            TreeParserError: if the file cannot be read or parsed.
        Returns:
            Tree: the parsed tree.
        """
        try:
            with open(filename) as handle:
                newick = handle.read()
        except OSError as err:
            raise TreeParserError(f"<<{filename}>> is a bad file "
                                  "name") from err

        tree = TreeParser.from_newick(newick)
        logger.info("Read a tree with %d tips from <<%s>>",
                    len(tree.get_tips()), filename)
        return tree

    @staticmethod
    def parse_tree_block(bio_tree : Any) -> Tree:
        """
        Given a biopython Tree object (with nested clade objects), build a
        PhyShift Tree with the same topology, names and branch lengths.

        Args:
            bio_tree (Any): the biopython library tree data structure
        Raises:
            TreeParserError: on non-binary nodes or missing branch lengths.
        Returns:
            Tree: the converted tree.
        """
        built : dict[int, Node] = {}

        # Children before parents
        for clade in bio_tree.find_clades(order = "postorder"):
            children = clade.clades
            if len(children) not in (0, 2):
                raise TreeParserError(f"Node '{clade.name}' has "
                                      f"{len(children)} children, the tree "
                                      "must be binary")

            is_root = clade is bio_tree.root
            if clade.branch_length is None and not is_root:
                raise TreeParserError(f"Node '{clade.name}' has no branch "
                                      "length")
            length = 0.0 if is_root else clade.branch_length

            try:
                if children:
                    node = Node(clade.name, length,
                                built[id(children[0])], built[id(children[1])])
                else:
                    node = Node(clade.name, length)
            except TreeError as err:
                raise TreeParserError(err.message) from err
            built[id(clade)] = node

        try:
            return Tree(built[id(bio_tree.root)])
        except TreeError as err:
            raise TreeParserError(err.message) from err
