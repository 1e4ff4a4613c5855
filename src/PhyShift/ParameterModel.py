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

The event machinery never looks inside an event's parameters. Whatever the
parameters mean (speciation rates, trait rates, ...) is decided by a
ParameterModel, which the Model calls whenever it needs to create, read or
summarise them.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING
import numpy as np

if TYPE_CHECKING:
    from .Tree import Tree


class ParameterModel(ABC):
    """
    Abstract service that owns the meaning of event parameters.
    """

    @abstractmethod
    def root_parameters(self) -> Any:
        """
        *ABSTRACT METHOD*

        Parameters of the root event at chain initialization.
        """
        raise NotImplementedError

    @abstractmethod
    def random_parameters(self, rng : np.random.Generator) -> Any:
        """
        *ABSTRACT METHOD*

        Draw the parameters of a newly inserted event. For the reversible jump
        acceptance ratio used by AddEventMove to be correct, the draw should
        come from the parameters' prior.

        Args:
            rng (np.random.Generator): The chain's random source.
        Returns:
            Any: a parameter payload.
        """
        raise NotImplementedError

    @abstractmethod
    def read_parameters(self, tokens : list[str]) -> Any:
        """
        *ABSTRACT METHOD*

        Build a parameter payload from the model specific block of one event
        data file record.

        Args:
            tokens (list[str]): whitespace separated fields after the time.
        Returns:
            Any: a parameter payload.
        """
        raise NotImplementedError

    def set_mean_branch_parameters(self, tree : Tree) -> None:
        """
        Hook called after every change to the event configuration, so that
        per branch summaries can be refreshed. Does nothing by default.

        Args:
            tree (Tree): the tree whose node events just changed.
        Returns:
            N/A
        """
        return None


class TokenParameters(ParameterModel):
    """
    A parameter model that treats parameters as a tuple of floats. New events
    copy a fixed default, and event data records are parsed field by field.
    Useful when only the placement of events matters.
    """

    def __init__(self, default : tuple[float, ...] = ()) -> None:
        """
        Args:
            default (tuple[float, ...], optional): payload for the root event
                                                   and for new events.
                                                   Defaults to ().
        Returns:
            N/A
        """
        self.default : tuple[float, ...] = tuple(float(x) for x in default)

    def root_parameters(self) -> tuple[float, ...]:
        return self.default

    def random_parameters(self, rng : np.random.Generator) -> tuple[float, ...]:
        return self.default

    def read_parameters(self, tokens : list[str]) -> tuple[float, ...]:
        return tuple(float(token) for token in tokens)
