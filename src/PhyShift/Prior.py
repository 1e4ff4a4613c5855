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
Design - [ ]
"""

from __future__ import annotations
from scipy.stats import expon, poisson

from .Settings import Settings


class Prior:
    """
    Prior densities used by the event machinery itself. Priors on event
    parameters belong to the parameter model.
    """

    def __init__(self, settings : Settings) -> None:
        """
        Args:
            settings (Settings): run settings, read for 'poissonRatePrior'.
        Returns:
            N/A
        """
        self.poisson_rate_prior_rate : float = settings.get_poisson_rate_prior()
        self._rate_dist = expon(scale = 1 / self.poisson_rate_prior_rate)

    def poisson_rate_prior(self, event_rate : float) -> float:
        """
        Log density of the event rate under an exponential prior whose rate
        is the 'poissonRatePrior' setting.

        Args:
            event_rate (float): expected number of events.
        Returns:
            float: log prior density (-inf for negative rates).
        """
        return float(self._rate_dist.logpdf(event_rate))

    def event_number_prior(self, num_events : int, event_rate : float) -> float:
        """
        Log probability of a number of events under a Poisson distribution
        with mean event_rate.

        Args:
            num_events (int): number of non-root events.
            event_rate (float): Poisson mean.
        Returns:
            float: log probability.
        """
        return float(poisson.logpmf(num_events, event_rate))
