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

Proposal moves. Each move performs one proposal on a Model and reports the
log of the prior times Hastings ratio of that proposal. The likelihood ratio
is the sampler's business.

The event count is Poisson with mean equal to the model's event rate and
event positions are uniform on the map. With add and remove proposed equally
often, adding an event to K events gives log(rate) - log(K + 1), and removing
one of K events gives log(K) - log(rate). New event parameters are drawn from
their prior, so they cancel.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from math import log
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .Model import Model


class MoveError(Exception):
    def __init__(self, message : str = "Error making a move") -> None:
        self.message = message
        super().__init__(self.message)


class Move(ABC):
    """
    Abstract superclass for all model move types.

    A move can be executed on a model that is passed in, and makes a
    reversible edit to one aspect of the model.
    """

    def __init__(self) -> None:
        self.log_ratio : float = None

    def is_applicable(self, model : Model) -> bool:
        """
        Whether this move can be made on model at all. A move that is not
        applicable counts as a rejected proposal.
        """
        return True

    @abstractmethod
    def execute(self, model : Model) -> None:
        """
        *ABSTRACT METHOD*

        Make the proposal on model, leaving it pending.

        Args:
            model (Model): the chain to edit.
        Returns:
            N/A
        """
        pass

    def undo(self, model : Model) -> None:
        """
        Revert the proposal made by execute.
        """
        model.undo_last_proposal()

    def hastings_ratio(self) -> float:
        """
        Log prior ratio plus log proposal (Hastings) ratio of the last
        execution.

        Raises:
            MoveError: if the move has not been executed.
        Returns:
            float: the log ratio.
        """
        if self.log_ratio is None:
            raise MoveError(f"{type(self).__name__} has not been executed")
        return self.log_ratio


class AddEventMove(Move):

    def execute(self, model : Model) -> None:
        num_events = model.get_number_of_events()
        model.add_event_to_tree()
        self.log_ratio = log(model.get_event_rate()) - log(num_events + 1)


class RemoveEventMove(Move):

    def is_applicable(self, model : Model) -> bool:
        return model.get_number_of_events() > 0

    def execute(self, model : Model) -> None:
        num_events = model.get_number_of_events()
        model.delete_event_from_tree(model.choose_event_at_random())
        self.log_ratio = log(num_events) - log(model.get_event_rate())


class LocalEventMove(Move):
    """
    Shift a random event by a small step. The step is symmetric and the map
    boundary reflects, so the proposal is symmetric.
    """

    def is_applicable(self, model : Model) -> bool:
        return model.get_number_of_events() > 0

    def execute(self, model : Model) -> None:
        model.event_local_move()
        self.log_ratio = 0.0


class GlobalEventMove(Move):
    """
    Put a random event anywhere on the map.
    """

    def is_applicable(self, model : Model) -> bool:
        return model.get_number_of_events() > 0

    def execute(self, model : Model) -> None:
        model.event_global_move()
        self.log_ratio = 0.0


class EventRateMove(Move):
    """
    Multiplicative update of the Poisson event rate. The ratio combines the
    rate's exponential hyperprior, the Poisson probability of the current
    event count, and the proposal ratio of a multiplicative step, which is
    the multiplier itself.
    """

    def execute(self, model : Model) -> None:
        old_rate = model.get_event_rate()
        multiplier = model.propose_event_rate()
        new_rate = model.get_event_rate()
        num_events = model.get_number_of_events()

        log_prior_ratio = model.prior.poisson_rate_prior(new_rate) \
                          - model.prior.poisson_rate_prior(old_rate)
        log_count_ratio = model.prior.event_number_prior(num_events, new_rate) \
                          - model.prior.event_number_prior(num_events, old_rate)

        self.log_ratio = log_prior_ratio + log_count_ratio + log(multiplier)
