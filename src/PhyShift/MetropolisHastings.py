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
Last Stable Edit : 10/16/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]
"""

from __future__ import annotations
import logging
import math
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable
import numpy as np

from .Model import Model
from .Move import (Move, AddEventMove, RemoveEventMove, LocalEventMove,
                   GlobalEventMove, EventRateMove)
from .Settings import Settings

logger = logging.getLogger(__name__)

###########################
#### EXCEPTION CLASSES ####
###########################

class MetropolisHastingsException(Exception):
    """
    This exception is raised when there is an error running the Metropolis
    Hastings algorithm.
    """

    def __init__(self,
                 message : str = "Error running Metropolis-Hastings") -> None:
        """
        Initialize the exception with an error message.

        Args:
            message (str, optional): A custom error message. Defaults to
                                     "Error running Metropolis-Hastings".
        Returns:
            N/A
        """
        self.message = message
        super().__init__(self.message)

##########################
#### PROPOSAL KERNELS ####
##########################

class ProposalKernel(ABC):
    """
    Abstract class that defines proposal kernel behavior.

    In general, simply must have a generate method that spits out a move.
    """

    @abstractmethod
    def generate(self) -> Move:
        """
        *ABSTRACT METHOD*

        Generate the next move for a model to apply.

        Args:
            N/A
        Returns:
            Move: Any newly instantiated object that is a subclass of Move.
        """
        raise NotImplementedError("Calling abstract method from the \
                                  ProposalKernel superclass. Please implement \
                                  a subclass with a generate method that \
                                  returns a subclass of type 'Move'")


class EventProposalKernel(ProposalKernel):
    """
    Chooses between event number (add or remove, equally likely), event
    position (local or global) and event rate moves, in proportion to the
    update rates in the settings.
    """

    def __init__(self, settings : Settings, rng : np.random.Generator) -> None:
        """
        Args:
            settings (Settings): read for 'updateRateEventNumber',
                                 'updateRateEventPosition',
                                 'updateRateEventRate' and
                                 'localGlobalMoveRatio'.
            rng (np.random.Generator): the result of a .default_rng(seed) call
        Raises:
            MetropolisHastingsException: if every update rate is 0.
        Returns:
            N/A
        """
        self.rng : np.random.Generator = rng

        ratio = settings.get_local_global_move_ratio()
        position = settings.get_update_rate_event_position()
        number = settings.get_update_rate_event_number()

        self.moves : list[type[Move]] = [AddEventMove,
                                         RemoveEventMove,
                                         LocalEventMove,
                                         GlobalEventMove,
                                         EventRateMove]
        weights = np.array([number / 2,
                            number / 2,
                            position * ratio / (ratio + 1),
                            position / (ratio + 1),
                            settings.get_update_rate_event_rate()])

        if weights.sum() <= 0:
            raise MetropolisHastingsException("At least one update rate must "
                                              "be greater than 0")
        self.probabilities : np.ndarray = weights / weights.sum()

    def generate(self) -> Move:
        choice = self.rng.choice(len(self.moves), p = self.probabilities)
        return self.moves[choice]()

#############################
#### METROPOLIS HASTINGS ####
#############################

class MetropolisHastings:
    """
    Metropolis-Hastings sampler over event configurations. The likelihood
    difference of each proposal is tempered by the chain's coldness before
    the prior and Hastings ratios are added.
    """

    def __init__(self,
                 model : Model,
                 pkernel : ProposalKernel = None,
                 likelihood : Callable[[Model], float] = None,
                 num_iter : int = None) -> None:
        """
        Initialize a Metropolis Hastings search.

        Args:
            model (Model): the chain to sample.
            pkernel (ProposalKernel, optional): A proposal kernel. Defaults to
                                                an EventProposalKernel built
                                                from the model's settings.
            likelihood (Callable[[Model], float], optional): log likelihood of
                                                a model's current state.
                                                Defaults to None, a flat
                                                likelihood (sample the prior).
            num_iter (int, optional): number of proposals per run. Defaults
                                      to the 'numberOfGenerations' setting.
        Returns:
            N/A
        """
        self.model : Model = model
        self.kernel : ProposalKernel = pkernel if pkernel is not None \
            else EventProposalKernel(model.settings, model.rng)
        self.likelihood : Callable[[Model], float] = likelihood \
            if likelihood is not None else (lambda _ : 0.0)
        self.num_iter : int = num_iter if num_iter is not None \
            else model.settings.get_number_of_generations()

        self.current_likelihood : float = self._score()

        # move name -> [accepted, proposed]
        self.move_stats : dict[str, list[int]] = defaultdict(lambda : [0, 0])

    def _score(self) -> float:
        score = float(self.likelihood(self.model))
        if math.isnan(score):
            raise MetropolisHastingsException("The likelihood returned NaN")
        return score

    def step(self) -> bool:
        """
        Make one proposal and accept or reject it.

        Args:
            N/A
        Returns:
            bool: True if the proposal was accepted.
        """
        next_move = self.kernel.generate()
        stats = self.move_stats[type(next_move).__name__]
        stats[1] += 1

        if not next_move.is_applicable(self.model):
            self.model.reject()
            return False

        next_move.execute(self.model)
        proposed = self._score()

        log_ratio = self.model.get_coldness() \
                    * (proposed - self.current_likelihood) \
                    + next_move.hastings_ratio()

        if self.model.accept_metropolis_hastings(log_ratio):
            self.model.accept()
            self.current_likelihood = proposed
            stats[0] += 1
            return True

        next_move.undo(self.model)
        self.model.reject()
        return False

    def run(self) -> Model:
        """
        Run the Metropolis-Hastings algorithm for the configured number of
        iterations.

        Args:
            N/A
        Returns:
            Model: the model, in its final state.
        """
        logger.info("Begin Metropolis-Hastings: %d iterations", self.num_iter)

        for iter_no in range(self.num_iter):
            self.step()
            logger.debug("ITER #%d LIKELIHOOD = %f EVENTS = %d RATE = %f",
                         iter_no, self.current_likelihood,
                         self.model.get_number_of_events(),
                         self.model.get_event_rate())

        logger.info("Done. Acceptance rate %.3f, %d events",
                    self.model.acceptance_rate(),
                    self.model.get_number_of_events())
        return self.model
