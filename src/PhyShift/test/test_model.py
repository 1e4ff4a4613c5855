import numpy as np
import pytest

from PhyShift.BranchHistory import EventNotFoundError
from PhyShift.EventIndex import EmptyIndexError
from PhyShift.Model import (Coldness, ModelError, NoPendingMoveError,
                            PendingProposalError, ProposalType)
from PhyShift.Tree import PositionOutOfRangeError
from helpers import FIVE_TIP_NEWICK, build_model, snapshot


def node_event(model, name):
    return model.tree.get_node_by_name(name).get_branch_history().get_node_event()


def seed_events(model, positions):
    events = []
    for position in positions:
        events.append(model.add_event_to_tree(position))
        model.accept()
    return events

#########################
#### INITIAL STATE ######
#########################

def test_initial_state(boundary_model):
    model = boundary_model
    root_event = model.get_root_event()

    for node in model.tree.get_nodes():
        assert node.get_branch_history().get_node_event() is root_event
    assert model.get_number_of_events() == 0
    assert model.get_event_rate() == 1.0
    assert model.get_scale() == pytest.approx(0.05 * 6.0)
    assert model.get_accept_last() == -1
    assert model.get_pending_proposal() is None
    model.check_branch_histories()


def test_event_rate_starts_at_prior_mean():
    model = build_model(FIVE_TIP_NEWICK, poissonRatePrior=2.0)
    assert model.get_event_rate() == 0.5

###########################
#### BOUNDARY SCENARIO ####
###########################

def test_boundary_scenario(boundary_model):
    model = boundary_model
    event = model.add_event_to_tree(5.0)
    model.accept()

    assert event.get_event_node().get_name() == "Y"
    assert node_event(model, "Z") is event
    assert node_event(model, "W") is event
    assert node_event(model, "X") is model.get_root_event()

    model.delete_event_from_tree(event)
    model.accept()

    assert node_event(model, "Z") is model.get_root_event()
    assert node_event(model, "Y") is model.get_root_event()
    model.check_branch_histories()


def test_tip_most_event_governs(boundary_model):
    model = boundary_model
    early, late = seed_events(model, [4.0, 6.0])

    assert node_event(model, "Y") is late
    assert node_event(model, "Z") is late

    model.delete_event_from_tree(late)
    model.accept()
    assert node_event(model, "Z") is early

    model.delete_event_from_tree(early)
    model.accept()
    assert node_event(model, "Z") is model.get_root_event()


def test_deleting_shadowed_event_changes_nothing(boundary_model):
    model = boundary_model
    early, late = seed_events(model, [4.0, 6.0])
    before = node_event(model, "W")

    model.delete_event_from_tree(early)
    model.accept()

    assert node_event(model, "W") is before is late
    model.check_branch_histories()

#############################
#### PROPAGATION LOCALITY ###
#############################

def test_propagation_is_local(five_tip_model):
    model = five_tip_model
    # CD covers [5.5, 7.5), CDE covers [4.5, 5.5)
    barrier, = seed_events(model, [6.0])
    before = {node.get_name(): node.get_branch_history().get_node_event()
              for node in model.tree.get_nodes()}

    event = model.add_event_to_tree(5.0)
    model.accept()

    after = {node.get_name(): node.get_branch_history().get_node_event()
             for node in model.tree.get_nodes()}

    changed = {name for name in after if after[name] is not before[name]}
    assert changed == {"CDE", "E"}
    assert after["C"] is after["D"] is barrier
    assert model.tree.get_node_by_name("CD").get_branch_history() \
               .get_ancestral_node_event() is event
    model.check_branch_histories()

##################################
#### MOVES AND EXACT REVERSALS ###
##################################

@pytest.mark.parametrize("seed", range(25))
@pytest.mark.parametrize("local", [True, False])
def test_move_then_revert_restores_state(seed, local):
    model = build_model(FIVE_TIP_NEWICK, seed=seed, updateEventLocationScale=0.5)
    seed_events(model, [0.7, 2.0, 5.0, 6.2, 8.5, 11.0])
    before = snapshot(model)

    moved = model.event_move(local)
    assert model.get_pending_proposal() is ProposalType.MOVE
    assert model.get_last_event_modified() is moved
    model.check_branch_histories()

    model.revert_moved_event_to_previous()

    assert snapshot(model) == before
    assert not moved.has_old_map_position()
    assert model.get_pending_proposal() is None
    assert model.get_last_event_modified() is None
    model.check_branch_histories()


def test_local_move_step_is_bounded(boundary_model):
    model = boundary_model
    event, = seed_events(model, [5.0])

    for _ in range(200):
        model.event_local_move()
        assert abs(event.get_map_time() - 5.0) <= model.get_scale() / 2 + 1e-12
        model.reject()
        assert event.get_map_time() == 5.0


def test_accepted_move_keeps_new_position(boundary_model):
    model = boundary_model
    event, = seed_events(model, [5.0])

    model.event_global_move()
    moved_to = event.get_map_time()
    model.accept()

    assert event.get_map_time() == moved_to
    assert not event.has_old_map_position()
    assert node_event(model, event.get_event_node().get_name()) is event
    model.check_branch_histories()


def test_insert_then_delete_is_inverse(five_tip_model):
    model = five_tip_model
    seed_events(model, [1.0, 6.0, 10.0])
    before = snapshot(model)

    for position in (0.2, 4.9, 5.6, 9.3, 11.99):
        event = model.add_event_to_tree(position)
        model.accept()
        model.delete_event_from_tree(event)
        model.accept()
        assert snapshot(model) == before

    model.check_branch_histories()

#################################
#### REJECTION IS AN INVERSE ####
#################################

@pytest.mark.parametrize("propose", [
    lambda model: model.add_event_to_tree(),
    lambda model: model.delete_event_from_tree(model.choose_event_at_random()),
    lambda model: model.event_local_move(),
    lambda model: model.event_global_move(),
    lambda model: model.propose_event_rate(),
])
def test_reject_restores_state(five_tip_model, propose):
    model = five_tip_model
    seed_events(model, [1.0, 3.0, 6.0, 10.0])
    before = snapshot(model)

    propose(model)
    model.reject()

    assert snapshot(model) == before
    assert model.get_pending_proposal() is None
    assert model.get_reject_count() == 1
    assert model.get_accept_last() == 0
    model.check_branch_histories()


def test_rejected_delete_restores_same_event(boundary_model):
    model = boundary_model
    event, = seed_events(model, [5.0])

    model.delete_event_from_tree(event)
    assert model.last_deleted_event_map_time == 5.0
    model.reject()

    assert model.get_events() == [event]
    assert node_event(model, "Z") is event


def test_random_proposals_keep_invariant(five_tip_model):
    model = five_tip_model
    rng = np.random.default_rng(99)

    for _ in range(400):
        action = rng.integers(0, 5)
        if action == 0 or model.get_number_of_events() == 0:
            model.add_event_to_tree()
        elif action == 1:
            model.delete_event_from_tree(model.choose_event_at_random())
        elif action == 2:
            model.event_local_move()
        elif action == 3:
            model.event_global_move()
        else:
            model.propose_event_rate()
        model.check_branch_histories()

        if rng.uniform() < 0.5:
            model.accept()
        else:
            model.reject()
        model.check_branch_histories()

    assert model.get_accept_count() + model.get_reject_count() == 400
    assert model.generation == 400

##########################
#### CONTRACT ERRORS #####
##########################

def test_second_proposal_while_pending(boundary_model):
    model = boundary_model
    model.add_event_to_tree(5.0)

    with pytest.raises(PendingProposalError):
        model.add_event_to_tree(1.0)
    with pytest.raises(PendingProposalError):
        model.event_local_move()
    with pytest.raises(PendingProposalError):
        model.propose_event_rate()


def test_revert_needs_pending_move(boundary_model):
    model = boundary_model
    with pytest.raises(NoPendingMoveError):
        model.revert_moved_event_to_previous()

    model.add_event_to_tree(5.0)
    with pytest.raises(NoPendingMoveError):
        model.revert_moved_event_to_previous()
    model.accept()

    model.event_global_move()
    model.revert_moved_event_to_previous()
    with pytest.raises(NoPendingMoveError):
        model.revert_moved_event_to_previous()


def test_root_event_cannot_be_deleted(boundary_model):
    with pytest.raises(EventNotFoundError):
        boundary_model.delete_event_from_tree(boundary_model.get_root_event())


def test_deleting_absent_event(boundary_model):
    model = boundary_model
    event, = seed_events(model, [5.0])
    model.delete_event_from_tree(event)
    model.accept()

    with pytest.raises(EventNotFoundError):
        model.delete_event_from_tree(event)


def test_moves_need_events(boundary_model):
    with pytest.raises(EmptyIndexError):
        boundary_model.event_local_move()
    with pytest.raises(EmptyIndexError):
        boundary_model.choose_event_at_random()


def test_insert_outside_map(boundary_model):
    with pytest.raises(PositionOutOfRangeError):
        boundary_model.add_event_to_tree(10.0)
    assert boundary_model.get_pending_proposal() is None


def test_corruption_is_detected(boundary_model):
    model = boundary_model
    seed_events(model, [5.0])
    model.tree.get_node_by_name("Z").get_branch_history() \
        .set_node_event(model.get_root_event())

    with pytest.raises(ModelError):
        model.check_branch_histories()

##########################
#### BOOKKEEPING #########
##########################

def test_counters(boundary_model):
    model = boundary_model
    model.add_event_to_tree(5.0)
    model.accept()
    model.add_event_to_tree(1.0)
    model.reject()
    model.accept()

    assert model.get_accept_count() == 2
    assert model.get_reject_count() == 1
    assert model.get_accept_last() == 1
    assert model.acceptance_rate() == pytest.approx(2 / 3)
    assert model.get_number_of_events() == 1


def test_count_events_in_branch_history(five_tip_model):
    model = five_tip_model
    seed_events(model, [0.5, 1.0, 6.0, 7.0, 11.0])
    cde = model.tree.get_node_by_name("CDE")

    assert model.count_events_in_branch_history() == 5
    assert model.count_events_in_branch_history(cde) == 3


def test_accept_metropolis_hastings(boundary_model):
    assert boundary_model.accept_metropolis_hastings(0.0)
    assert boundary_model.accept_metropolis_hastings(3.0)
    assert not boundary_model.accept_metropolis_hastings(-np.inf)

    accepted = sum(boundary_model.accept_metropolis_hastings(np.log(0.25))
                   for _ in range(4000))
    assert accepted / 4000 == pytest.approx(0.25, abs=0.03)


def test_coldness_is_shared():
    coldness = Coldness(1.0)
    first = build_model(FIVE_TIP_NEWICK)
    second = build_model(FIVE_TIP_NEWICK)
    first.coldness = second.coldness = coldness

    coldness.set(0.25)
    assert first.get_coldness() == second.get_coldness() == 0.25

    with pytest.raises(ValueError):
        coldness.set(-1.0)
