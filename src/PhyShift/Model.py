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

The state of one chain: the event configuration on a fixed tree, and the
engine that inserts, deletes and moves events while keeping every node's
effective event consistent.

Every proposal (insert, delete, local or global move, event rate update)
opens a single pending slot. The sampler closes it with accept(), which keeps
the new state, or reject(), which applies the exact inverse edit. A second
proposal while one is pending is an error.
"""

from __future__ import annotations
import logging
import math
from enum import Enum
from typing import Any
import numpy as np

from .BranchEvent import BranchEvent
from .BranchHistory import EventNotFoundError
from .EventDataFile import EventDataError, read_event_data_file
from .EventIndex import EventIndex
from .ParameterModel import ParameterModel
from .Prior import Prior
from .Settings import Settings, SettingsError
from .Tree import Node, Tree, PositionOutOfRangeError
from .TreeParser import TreeParser

logger = logging.getLogger(__name__)

###########################
#### EXCEPTION CLASSES ####
###########################

class ModelError(Exception):
    """
    This exception is raised when the event configuration of a model is found
    to be inconsistent.
    """
    def __init__(self, message : str = "Inconsistent model state") -> None:
        self.message = message
        super().__init__(self.message)

class NoPendingMoveError(Exception):
    """
    This exception is raised when a moved event is to be reverted, but the
    pending proposal is not an event move.
    """
    def __init__(self, message : str = "There is no move to revert") -> None:
        self.message = message
        super().__init__(self.message)

class PendingProposalError(Exception):
    """
    This exception is raised when a new proposal is made before the previous
    one was accepted or rejected.
    """
    def __init__(self,
                 message : str = "A proposal is still pending") -> None:
        self.message = message
        super().__init__(self.message)

#####################
#### SHARED BITS ####
#####################

class ProposalType(Enum):
    ADD = "add event"
    DELETE = "delete event"
    MOVE = "move event"
    EVENT_RATE = "update event rate"


class Coldness:
    """
    The heating coefficient of a chain in a Metropolis coupled ensemble. One
    instance may be shared by several chains. Only the ensemble coordinator
    calls set(), between chain steps; chains only read it.
    """

    def __init__(self, value : float = 1.0) -> None:
        self.set(value)

    def get(self) -> float:
        return self.value

    def set(self, value : float) -> None:
        if value < 0:
            raise ValueError(f"Coldness must not be negative, got {value}")
        self.value : float = float(value)

###############
#### MODEL ####
###############

class Model:
    """
    Event configuration of one chain, plus the insert / delete / move /
    revert engine.
    """

    def __init__(self,
                 rng : np.random.Generator,
                 tree : Tree,
                 settings : Settings,
                 prior : Prior,
                 parameter_model : ParameterModel,
                 coldness : Coldness = None) -> None:
        """
        Initialize a chain with only the root event on the tree.

        Args:
            rng (np.random.Generator): the result of a .default_rng(seed) call
            tree (Tree): the tree. Not modified, apart from branch histories.
            settings (Settings): run settings.
            prior (Prior): hyperpriors.
            parameter_model (ParameterModel): owner of event parameters.
            coldness (Coldness, optional): shared heating coefficient.
                                           Defaults to a private coldness of
                                           1.0.
        Returns:
            N/A
        """
        self.rng : np.random.Generator = rng
        self.tree : Tree = tree
        self.settings : Settings = settings
        self.prior : Prior = prior
        self.parameter_model : ParameterModel = parameter_model
        self.coldness : Coldness = coldness if coldness is not None \
                                   else Coldness()

        # Event location scale is relative to the maximum root-to-tip length
        self.scale : float = settings.get_update_event_location_scale() \
                             * tree.max_root_to_tip_length()
        self.update_event_rate_scale : float = \
            settings.get_update_event_rate_scale()
        self.local_global_move_ratio : float = \
            settings.get_local_global_move_ratio()
        self.poisson_rate_prior : float = settings.get_poisson_rate_prior()

        # Initialize event rate to generate expected number of prior events
        self.event_rate : float = 1 / self.poisson_rate_prior

        self.accept_count : int = 0
        self.reject_count : int = 0
        self.accept_last : int = -1
        self.generation : int = 0
        self.last_deleted_event_map_time : float = 0.0

        self.event_collection : EventIndex = EventIndex()

        self._pending : ProposalType = None
        self._last_event_modified : BranchEvent = None
        self._last_event_rate : float = None

        self.root_event : BranchEvent = BranchEvent(
            tree, parameters = parameter_model.root_parameters(),
            is_root = True)
        root_history = tree.get_root().get_branch_history()
        root_history.set_node_event(self.root_event)
        root_history.set_ancestral_node_event(self.root_event)
        self.forward_set_branch_histories(self.root_event)
        self.parameter_model.set_mean_branch_parameters(self.tree)

    @classmethod
    def from_settings(cls,
                      settings : Settings,
                      parameter_model : ParameterModel,
                      coldness : Coldness = None) -> Model:
        """
        Build a chain from run settings: read the 'treefile' tree, seed the
        random source with 'seed', and, if 'eventDataInfile' is set, place
        the events it lists.

        Args:
            settings (Settings): run settings.
            parameter_model (ParameterModel): owner of event parameters.
            coldness (Coldness, optional): shared heating coefficient.
                                           Defaults to None.
        Raises:
            SettingsError: if no tree file is set.
            TreeParserError: if the tree cannot be read.
            EventDataError: if the event data file cannot be read.
        Returns:
            Model: the new chain.
        """
        if settings.get_tree_file_name() is None:
            raise SettingsError("The 'treefile' setting is required")

        tree = TreeParser.from_file(settings.get_tree_file_name())
        model = cls(np.random.default_rng(settings.get_seed()),
                    tree,
                    settings,
                    Prior(settings),
                    parameter_model,
                    coldness)

        if settings.get_event_data_infile() is not None:
            model.initialize_model_from_event_data_file()
        return model

    #################
    #### QUERIES ####
    #################

    def get_root_event(self) -> BranchEvent:
        return self.root_event

    def get_number_of_events(self) -> int:
        """
        Number of events on the tree, not counting the root event.
        """
        return self.event_collection.size()

    def get_events(self) -> list[BranchEvent]:
        return list(self.event_collection)

    def get_event_rate(self) -> float:
        return self.event_rate

    def set_event_rate(self, event_rate : float) -> None:
        self.event_rate = event_rate

    def get_scale(self) -> float:
        return self.scale

    def get_coldness(self) -> float:
        return self.coldness.get()

    def get_accept_count(self) -> int:
        return self.accept_count

    def get_reject_count(self) -> int:
        return self.reject_count

    def get_accept_last(self) -> int:
        """
        Outcome of the last closed proposal: 1 if accepted, 0 if rejected,
        -1 if no proposal has been closed yet.
        """
        return self.accept_last

    def acceptance_rate(self) -> float:
        total = self.accept_count + self.reject_count
        return self.accept_count / total if total else 0.0

    def get_pending_proposal(self) -> ProposalType:
        return self._pending

    def get_last_event_modified(self) -> BranchEvent:
        return self._last_event_modified

    #####################
    #### PROPAGATION ####
    #####################

    def forward_set_branch_histories(self, event : BranchEvent) -> None:
        """
        Push an event down the tree after the branch it sits on was edited.

        The root event is pushed into both subtrees of the root. Any other
        event only matters if it is the tip-most event on its branch; it then
        becomes the node event of its node and is pushed into the node's
        descendants. Otherwise a more tip-ward event on the same branch shadows
        it and nothing changes.

        Args:
            event (BranchEvent): the event to push from.
        Returns:
            N/A
        """
        node = event.get_event_node()

        if event is self.root_event:
            self._forward_set_histories(node.children())
        elif event is node.get_branch_history().get_last_event():
            node.get_branch_history().set_node_event(event)
            self._forward_set_histories(node.children())

    def _forward_set_histories(self, start : list[Node]) -> None:
        """
        Hand each node its ancestor's node event. A node with no events of its
        own inherits that event and passes it on to its descendants. A node
        with events of its own stops the walk, since its tip-most event
        shadows everything pushed from above.
        """
        stack = list(start)
        while stack:
            node = stack.pop()
            history = node.get_branch_history()
            last_event = node.get_anc().get_branch_history().get_node_event()

            history.set_ancestral_node_event(last_event)
            if history.get_number_of_branch_events() == 0:
                history.set_node_event(last_event)
                stack.extend(node.children())

    def _attach(self, event : BranchEvent) -> None:
        event.get_event_node().get_branch_history() \
             .add_event_to_branch_history(event)
        self.event_collection.insert(event)
        self.forward_set_branch_histories(event)
        self.parameter_model.set_mean_branch_parameters(self.tree)

    def _detach(self, event : BranchEvent) -> None:
        if event is self.root_event:
            raise EventNotFoundError("The root event cannot be deleted")
        if event not in self.event_collection:
            raise EventNotFoundError(f"{event} is not on the tree")

        history = event.get_event_node().get_branch_history()

        # The event that takes over everything the deleted event governed
        previous_event = history.get_last_event(event)

        history.pop_event_off_branch_history(event)
        self.event_collection.remove(event)
        self.forward_set_branch_histories(previous_event)
        self.parameter_model.set_mean_branch_parameters(self.tree)

    ###########################
    #### PENDING PROPOSALS ####
    ###########################

    def _open(self, kind : ProposalType, event : BranchEvent = None) -> None:
        self._pending = kind
        self._last_event_modified = event

    def _close(self) -> None:
        self._pending = None
        self._last_event_modified = None
        self._last_event_rate = None

    def _check_no_pending(self) -> None:
        if self._pending is not None:
            raise PendingProposalError(f"Cannot propose a new change while "
                                       f"'{self._pending.value}' is pending")

    def accept(self) -> None:
        """
        Keep the pending proposal (if any) and count an acceptance.

        Args:
            N/A
        Returns:
            N/A
        """
        if self._pending is ProposalType.MOVE:
            self._last_event_modified.clear_old_map_position()
        self._close()
        self.accept_count += 1
        self.accept_last = 1
        self.generation += 1

    def reject(self) -> None:
        """
        Undo the pending proposal (if any) and count a rejection.

        Args:
            N/A
        Returns:
            N/A
        """
        self.undo_last_proposal()
        self.reject_count += 1
        self.accept_last = 0
        self.generation += 1

    def undo_last_proposal(self) -> None:
        """
        Apply the exact inverse of the pending proposal. Does nothing if no
        proposal is pending.

        Args:
            N/A
        Returns:
            N/A
        """
        kind = self._pending
        event = self._last_event_modified
        old_event_rate = self._last_event_rate

        if kind is ProposalType.MOVE:
            self.revert_moved_event_to_previous()
            return

        self._close()
        if kind is ProposalType.ADD:
            self._detach(event)
        elif kind is ProposalType.DELETE:
            self._attach(event)
        elif kind is ProposalType.EVENT_RATE:
            self.event_rate = old_event_rate

    ###################
    #### PROPOSALS ####
    ###################

    def add_event_to_tree(self, map_time : float = None) -> BranchEvent:
        """
        Insert a new event with parameters from the parameter model.

        Args:
            map_time (float, optional): map position of the event. Defaults
                                        to None, a position drawn uniformly
                                        over the whole map.
        Raises:
            PendingProposalError: if a proposal is pending.
            PositionOutOfRangeError: if map_time is not on the tree.
        Returns:
            BranchEvent: the new event.
        """
        self._check_no_pending()

        if map_time is None:
            map_time = self.rng.uniform(self.tree.get_root().get_map_start(),
                                        self.tree.get_total_map_length())

        event = BranchEvent(self.tree, map_time,
                            self.parameter_model.random_parameters(self.rng))
        self._attach(event)
        self._open(ProposalType.ADD, event)
        return event

    def delete_event_from_tree(self, event : BranchEvent) -> None:
        """
        Remove an event from the tree. The event immediately root-ward of it
        takes over the nodes it governed.

        Args:
            event (BranchEvent): an event on the tree.
        Raises:
            PendingProposalError: if a proposal is pending.
            EventNotFoundError: for the root event or an event not on the tree.
        Returns:
            N/A
        """
        self._check_no_pending()
        self._detach(event)
        self.last_deleted_event_map_time = event.get_map_time()
        self._open(ProposalType.DELETE, event)

    def choose_event_at_random(self) -> BranchEvent:
        """
        Raises:
            EmptyIndexError: if there are no non-root events.
        Returns:
            BranchEvent: a uniformly chosen non-root event.
        """
        return self.event_collection.pick_uniform(self.rng)

    def event_local_move(self) -> BranchEvent:
        return self.event_move(True)

    def event_global_move(self) -> BranchEvent:
        return self.event_move(False)

    def event_move(self, local : bool) -> BranchEvent:
        """
        Choose an event at random and move it, either by a small step
        (uniform in [-scale / 2, scale / 2), reflected at the map ends) or to
        a uniformly drawn position anywhere on the map.

        Args:
            local (bool): True for a local move, False for a global move.
        Raises:
            PendingProposalError: if a proposal is pending.
            EmptyIndexError: if there are no non-root events.
        Returns:
            BranchEvent: the moved event.
        """
        self._check_no_pending()

        chosen_event = self.choose_event_at_random()

        # Histories are set forward from here, as this event governs what the
        # chosen event governed once it leaves
        history = chosen_event.get_event_node().get_branch_history()
        previous_event = history.get_last_event(chosen_event)

        history.pop_event_off_branch_history(chosen_event)
        self.event_collection.remove(chosen_event)

        if local:
            step = self.rng.uniform(0, self.scale) - 0.5 * self.scale
            chosen_event.move_event_local(step)
        else:
            chosen_event.move_event_global(
                self.rng.uniform(self.tree.get_root().get_map_start(),
                                 self.tree.get_total_map_length()))

        chosen_event.get_event_node().get_branch_history() \
                    .add_event_to_branch_history(chosen_event)
        self.event_collection.insert(chosen_event)

        self.forward_set_branch_histories(previous_event)
        self.forward_set_branch_histories(chosen_event)

        self._open(ProposalType.MOVE, chosen_event)
        self.parameter_model.set_mean_branch_parameters(self.tree)
        return chosen_event

    def revert_moved_event_to_previous(self) -> None:
        """
        Put the last moved event back where it was before the move.

        Args:
            N/A
        Raises:
            NoPendingMoveError: if the pending proposal is not a move.
        Returns:
            N/A
        """
        if self._pending is not ProposalType.MOVE:
            raise NoPendingMoveError()

        event = self._last_event_modified
        history = event.get_event_node().get_branch_history()

        # Event immediately root-ward of the moved event's current position
        new_last_event = history.get_last_event(event)

        history.pop_event_off_branch_history(event)
        self.event_collection.remove(event)

        event.revert_old_map_position()

        event.get_event_node().get_branch_history() \
             .add_event_to_branch_history(event)
        self.event_collection.insert(event)

        self.forward_set_branch_histories(new_last_event)
        self.forward_set_branch_histories(event)

        self._close()
        self.parameter_model.set_mean_branch_parameters(self.tree)

    def propose_event_rate(self) -> float:
        """
        Multiply the event rate by exp(updateEventRateScale * (u - 1/2)),
        with u uniform on [0, 1).

        Args:
            N/A
        Raises:
            PendingProposalError: if a proposal is pending.
        Returns:
            float: the multiplier.
        """
        self._check_no_pending()

        multiplier = math.exp(self.update_event_rate_scale
                              * (self.rng.uniform() - 0.5))
        old_event_rate = self.event_rate
        self.event_rate = multiplier * old_event_rate

        self._open(ProposalType.EVENT_RATE)
        self._last_event_rate = old_event_rate
        return multiplier

    def accept_metropolis_hastings(self, log_ratio : float) -> bool:
        """
        Metropolis-Hastings coin flip.

        Args:
            log_ratio (float): log acceptance ratio of a proposal.
        Returns:
            bool: True with probability min(1, exp(log_ratio)).
        """
        if log_ratio >= 0:
            return True
        return bool(self.rng.uniform() < math.exp(log_ratio))

    ########################
    #### INITIALIZATION ####
    ########################

    def initialize_model_from_event_data_file(self, filename : str = None) -> None:
        """
        Seed the tree with the events of an event data file. A record placed
        at the root sets the root event's parameters instead of adding an
        event.

        Args:
            filename (str, optional): path of the event data file. Defaults to
                                      None, the 'eventDataInfile' setting.
        Raises:
            EventDataError: if the file is missing or a record is malformed,
                            names unknown species, or has a time that is not
                            on the branch it names.
            PendingProposalError: if a proposal is pending.
        Returns:
            N/A
        """
        self._check_no_pending()

        if filename is None:
            filename = self.settings.get_event_data_infile()
        if filename is None:
            raise EventDataError("No event data file was given")

        logger.info("Initializing model from <<%s>>", filename)

        records = read_event_data_file(filename)
        for record in records:
            node = record.resolve(self.tree)
            parameters = self._read_parameters(record.tokens, record.line_no)

            if node is self.tree.get_root():
                self.root_event.set_parameters(parameters)
                self.parameter_model.set_mean_branch_parameters(self.tree)
                continue

            map_time = record.map_time(node)
            if not node.contains(map_time):
                raise EventDataError(f"line {record.line_no}: time "
                                     f"{record.event_time} is not on the "
                                     f"branch leading to {node}")
            try:
                event = BranchEvent(self.tree, map_time, parameters)
            except PositionOutOfRangeError as err:
                raise EventDataError(f"line {record.line_no}: "
                                     f"{err.message}") from err
            self._attach(event)

        logger.info("Read a total of %d events.", len(records))
        logger.info("Added %d pre-defined events to tree, plus root event.",
                    self.get_number_of_events())

    def _read_parameters(self, tokens : list[str], line_no : int) -> Any:
        try:
            return self.parameter_model.read_parameters(tokens)
        except (TypeError, ValueError, IndexError) as err:
            raise EventDataError(f"line {line_no}: bad event parameters "
                                 f"{tokens}: {err}") from err

    #####################
    #### DIAGNOSTICS ####
    #####################

    def count_events_in_branch_history(self, node : Node = None) -> int:
        """
        Count the events on every branch of a subtree.

        Args:
            node (Node, optional): subtree root. Defaults to the tree root.
        Returns:
            int: number of events in the subtree's branch histories.
        """
        stack = [node if node is not None else self.tree.get_root()]
        count = 0
        while stack:
            current = stack.pop()
            count += current.get_branch_history().get_number_of_branch_events()
            stack.extend(current.children())
        return count

    def check_branch_histories(self) -> None:
        """
        Walk the whole tree and verify that every node's cached events agree
        with the events on the tree.

        Args:
            N/A
        Raises:
            ModelError: describing the first inconsistency found.
        Returns:
            N/A
        """
        root = self.tree.get_root()
        if root.get_branch_history().get_node_event() is not self.root_event:
            raise ModelError("The root is not governed by the root event")

        for node in self.tree.get_nodes():
            history = node.get_branch_history()

            for event in history.get_events():
                if event.get_event_node() is not node \
                        or not node.contains(event.get_map_time()):
                    raise ModelError(f"{event} is misplaced on {node}")
                if event not in self.event_collection:
                    raise ModelError(f"{event} on {node} is not indexed")

            if node is root:
                continue

            inherited = node.get_anc().get_branch_history().get_node_event()
            if history.get_ancestral_node_event() is not inherited:
                raise ModelError(f"Stale ancestral node event on {node}")

            expected = history.get_last_event() \
                       if history.get_number_of_branch_events() else inherited
            if history.get_node_event() is not expected:
                raise ModelError(f"{node} is governed by "
                                 f"{history.get_node_event()}, expected "
                                 f"{expected}")

        counted = self.count_events_in_branch_history()
        if counted != self.event_collection.size():
            raise ModelError(f"{counted} events on branches, but "
                             f"{self.event_collection.size()} indexed")
