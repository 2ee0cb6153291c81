from __future__ import annotations

import numpy as np
from pytest import approx

from coopsim.sim.core.brain import (
    FORWARD_CONE,
    HIDDEN,
    INPUTS,
    OUTPUTS,
    Brain,
    BrainNetwork,
    InputProcessorNetwork,
    sigmoid,
)
from coopsim.sim.core.entity import Entity


def _changed_cells(before: InputProcessorNetwork, after: InputProcessorNetwork) -> int:
    return int(np.count_nonzero(before.layer1 != after.layer1) + np.count_nonzero(before.layer2 != after.layer2))


def _zero_network() -> InputProcessorNetwork:
    return InputProcessorNetwork.from_weights(np.zeros((HIDDEN, INPUTS)), np.zeros((OUTPUTS, HIDDEN)))


def _steering_network(output: int) -> InputProcessorNetwork:
    """Network whose `output` grows with the sum of its inputs while the others stay at zero."""
    layer1 = np.zeros((HIDDEN, INPUTS))
    layer1[0, :] = 1.0
    layer2 = np.zeros((OUTPUTS, HIDDEN))
    layer2[output, 0] = 1.0
    return InputProcessorNetwork.from_weights(layer1, layer2)


def _brain_with(food: InputProcessorNetwork) -> Brain:
    brain = Brain(view_range=100.0, mutation_rate=0.5, seed=1)
    networks = brain.networks()
    networks.food_network = food
    networks.wall_network = _zero_network()
    networks.carnivore_network = _zero_network()
    brain.set_networks(networks)
    return brain


def test_sigmoid_is_odd_bounded_and_monotonic():
    assert sigmoid(0.0) == 0.0
    assert sigmoid(1.0) == approx(1.0 / 1.5)
    assert sigmoid(-2.0) == approx(-sigmoid(2.0))
    assert abs(sigmoid(1e9)) < 1.0
    values = sigmoid(np.linspace(-10.0, 10.0, 101))
    assert np.all(np.diff(values) > 0.0)


def test_network_shapes_and_weight_range():
    network = InputProcessorNetwork(seed=8)
    assert network.layer1.shape == (HIDDEN, INPUTS)
    assert network.layer2.shape == (OUTPUTS, HIDDEN)
    for layer in (network.layer1, network.layer2):
        assert np.all(layer >= -1.0)
        assert np.all(layer < 1.0)
    assert network.infer([0.0] * INPUTS).shape == (OUTPUTS,)


def test_same_seed_builds_identical_networks():
    assert InputProcessorNetwork(4).equals(InputProcessorNetwork(4))
    assert not InputProcessorNetwork(4).equals(InputProcessorNetwork(5))
    assert BrainNetwork(10).equals(BrainNetwork(10))


def test_mutation_changes_exactly_one_cell():
    network = InputProcessorNetwork(seed=21)
    for _ in range(25):
        before = network.copy()
        network.mutate()
        assert _changed_cells(before, network) == 1
    assert np.all(np.abs(network.layer1) <= 1.0)
    assert np.all(np.abs(network.layer2) <= 1.0)


def test_brain_network_mutation_touches_one_sub_network():
    network = BrainNetwork(seed=3)
    for _ in range(25):
        before = network.copy()
        network.mutate()
        changes = [
            _changed_cells(before.wall_network, network.wall_network),
            _changed_cells(before.food_network, network.food_network),
            _changed_cells(before.carnivore_network, network.carnivore_network),
        ]
        assert sorted(changes) == [0, 0, 1]


def test_copies_are_independent():
    network = BrainNetwork(seed=12)
    clone = network.copy()
    clone.mutate()
    assert not clone.equals(network)
    assert network.equals(BrainNetwork(seed=12))


def test_brain_networks_are_handed_out_as_copies():
    brain = Brain(view_range=100.0, mutation_rate=0.0, seed=2)
    networks = brain.networks()
    networks.mutate()
    assert not networks.equals(brain.networks())


def test_mutation_gate_compares_rate_against_draw():
    never = Brain(view_range=100.0, mutation_rate=1.0, seed=6)
    before = never.networks()
    assert not any(never.mutate() for _ in range(50))
    assert never.networks().equals(before)

    always = Brain(view_range=100.0, mutation_rate=0.0, seed=6)
    assert all(always.mutate() for _ in range(50))


def test_encoding_depends_on_viewer():
    brain = Brain(view_range=150.0, mutation_rate=0.1, seed=0)
    readings = [(Entity.FOOD, 75.0), None, (Entity.CARNIVORE, 0.0), (Entity.WALL, 150.0), (Entity.HERBIVORE, 30.0)]
    herbivore_view = brain.encode(readings, Entity.HERBIVORE)
    assert herbivore_view[0:5] == [1.0, 0.0, 0.0, 0.5, 0.0]
    assert herbivore_view[5:10] == [0.0, 0.0, 0.0, 0.0, 1.0]
    assert herbivore_view[10:15] == [0.0, 1.0, 0.0, 1.0, 0.0]
    assert herbivore_view[15:20] == [0.0, 0.0, 1.0, 0.0, 0.0]
    assert herbivore_view[20:25] == approx([0.0, 0.0, 0.0, 0.8, 0.0])

    carnivore_view = brain.encode(readings, Entity.CARNIVORE)
    assert carnivore_view[0:5] == [0.0, 0.0, 0.0, 0.5, 0.0]
    assert carnivore_view[20:25] == approx([1.0, 0.0, 0.0, 0.8, 0.0])


def test_relevant_inputs_follow_the_forward_cone():
    brain = Brain(view_range=100.0, mutation_rate=0.1, seed=0)
    readings = [None] * 8
    readings[6] = (Entity.FOOD, 50.0)
    readings[2] = (Entity.WALL, 0.0)
    readings[4] = (Entity.CARNIVORE, 10.0)
    food, carnivore, wall = brain.relevant_inputs(readings, Entity.HERBIVORE, 0)
    assert FORWARD_CONE[0] == (6, 7, 0, 1, 2)
    assert food == [0.5, 0.0, 0.0, 0.0, 0.0]
    assert wall == [0.0, 0.0, 0.0, 0.0, 1.0]
    # Ray 4 points backwards when facing 0.
    assert carnivore == [0.0] * 5


def test_ties_keep_the_current_facing():
    brain = _brain_with(_zero_network())
    readings = [(Entity.FOOD, 10.0)] * 8
    for facing in range(8):
        assert brain.get_new_direction(readings, Entity.HERBIVORE, facing) == facing


def test_outputs_turn_left_or_right_with_wraparound():
    readings = [(Entity.FOOD, 10.0)] * 8
    left = _brain_with(_steering_network(0))
    assert left.get_new_direction(readings, Entity.HERBIVORE, 2) == 1
    assert left.get_new_direction(readings, Entity.HERBIVORE, 0) == 7

    right = _brain_with(_steering_network(2))
    assert right.get_new_direction(readings, Entity.HERBIVORE, 7) == 0

    # Nothing in view leaves every output at zero.
    assert left.get_new_direction([None] * 8, Entity.HERBIVORE, 5) == 5


def test_prey_straight_ahead_keeps_a_carnivore_on_course():
    brain = Brain(view_range=150.0, mutation_rate=0.1, seed=42)
    networks = brain.networks()
    networks.food_network = _steering_network(1)
    networks.wall_network = _zero_network()
    networks.carnivore_network = _zero_network()
    brain.set_networks(networks)
    readings = [None] * 8
    readings[2] = (Entity.HERBIVORE, 75.0)
    assert brain.get_new_direction(readings, Entity.CARNIVORE, 2) == 2


def test_decision_is_a_pure_function_of_weights_and_readings():
    readings = [None, (Entity.FOOD, 20.0), (Entity.WALL, 90.0), None, (Entity.CARNIVORE, 40.0), None, None, (Entity.FOOD, 5.0)]
    first = Brain(view_range=150.0, mutation_rate=0.1, seed=42)
    second = Brain(view_range=150.0, mutation_rate=0.1, seed=42)
    for facing in range(8):
        expected = first.get_new_direction(readings, Entity.HERBIVORE, facing)
        assert first.get_new_direction(readings, Entity.HERBIVORE, facing) == expected
        assert second.get_new_direction(readings, Entity.HERBIVORE, facing) == expected
