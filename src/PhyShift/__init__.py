#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyShift --
##  Library for Branch Event Histories on Phylogenetic Trees
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##############################################################################

"""
PhyShift - Branch Event Histories on Phylogenetic Trees

Event (change point) configurations on a fixed rooted binary tree, with the
reversible jump proposals that insert, delete and move events.
"""

# Core data structures
from .Tree import Tree, Node, TreeError, PositionOutOfRangeError
from .BranchEvent import BranchEvent, BranchEventError, reflect_map_time
from .BranchHistory import BranchHistory, EventNotFoundError
from .EventIndex import EventIndex, EmptyIndexError

# Parsing and I/O
from .TreeParser import TreeParser, TreeParserError
from .EventDataFile import (EventRecord,
                            EventDataError,
                            parse_event_data,
                            read_event_data_file)
from .Settings import Settings, SettingsError

# Models and inference
from .ParameterModel import ParameterModel, TokenParameters
from .Prior import Prior
from .Model import (Model,
                    Coldness,
                    ProposalType,
                    ModelError,
                    NoPendingMoveError,
                    PendingProposalError)
from .Move import (Move,
                   MoveError,
                   AddEventMove,
                   RemoveEventMove,
                   LocalEventMove,
                   GlobalEventMove,
                   EventRateMove)
from .MetropolisHastings import (ProposalKernel,
                                 EventProposalKernel,
                                 MetropolisHastings,
                                 MetropolisHastingsException)

__version__ = "1.0.0"
__author__ = "Mark Kessler"
