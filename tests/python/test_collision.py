from __future__ import annotations

import pytest
from pygame.math import Vector2
from pytest import approx

from coopsim.errors import SimulationError
from coopsim.sim.core.collision import (
    Ball,
    BodyData,
    CollisionWorld,
    ConvexPolygon,
    Proximity,
    Segment,
    diamond_points,
)
from coopsim.sim.core.entity import (
    ALLIANCE_GROUPS,
    CARNIVORE_GROUPS,
    CARNIVORE_RAY_GROUPS,
    FOOD_GROUPS,
    HERBIVORE_GROUPS,
    HERBIVORE_RAY_GROUPS,
    WALL_GROUPS,
    CollisionGroup,
    Entity,
    GroupSet,
)
from coopsim.sim.core.spatial_grid import SpatialGrid

ALL_GROUPS = [
    FOOD_GROUPS,
    HERBIVORE_GROUPS,
    CARNIVORE_GROUPS,
    WALL_GROUPS,
    ALLIANCE_GROUPS,
    HERBIVORE_RAY_GROUPS,
    CARNIVORE_RAY_GROUPS,
]


def _herbivore(world: CollisionWorld, position: Vector2, energy: int = 100) -> int:
    return world.add(
        position, ConvexPolygon(diamond_points(30.0)), HERBIVORE_GROUPS, BodyData(Entity.HERBIVORE, 0, energy=energy)
    )


def test_group_set_is_a_closed_bitset():
    groups = GroupSet([CollisionGroup.FOOD, CollisionGroup.WALL])
    assert CollisionGroup.FOOD in groups
    assert CollisionGroup.HERBIVORE not in groups
    assert list(groups) == [CollisionGroup.FOOD, CollisionGroup.WALL]
    assert groups == GroupSet([CollisionGroup.WALL, CollisionGroup.FOOD])
    with pytest.raises(ValueError):
        GroupSet([8])


def test_interaction_table():
    assert FOOD_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert not FOOD_GROUPS.can_interact_with(CARNIVORE_GROUPS)
    assert not HERBIVORE_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert not CARNIVORE_GROUPS.can_interact_with(CARNIVORE_GROUPS)
    assert CARNIVORE_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert WALL_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert not WALL_GROUPS.can_interact_with(FOOD_GROUPS)
    assert ALLIANCE_GROUPS.can_interact_with(CARNIVORE_GROUPS)
    assert not ALLIANCE_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert HERBIVORE_RAY_GROUPS.can_interact_with(FOOD_GROUPS)
    assert not HERBIVORE_RAY_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert CARNIVORE_RAY_GROUPS.can_interact_with(HERBIVORE_GROUPS)
    assert CARNIVORE_RAY_GROUPS.can_interact_with(CARNIVORE_GROUPS)
    assert not CARNIVORE_RAY_GROUPS.can_interact_with(FOOD_GROUPS)
    assert not CARNIVORE_RAY_GROUPS.can_interact_with(ALLIANCE_GROUPS)


def test_interaction_table_is_symmetric():
    for first in ALL_GROUPS:
        for second in ALL_GROUPS:
            assert first.can_interact_with(second) == second.can_interact_with(first)


def test_grid_candidate_pairs_share_a_cell():
    grid = SpatialGrid(cell_size=10.0)
    grid.insert(0, (0.0, 0.0, 4.0, 4.0))
    grid.insert(1, (3.0, 3.0, 6.0, 6.0))
    grid.insert(2, (50.0, 50.0, 52.0, 52.0))
    assert grid.candidate_pairs() == {(0, 1)}
    grid.move(2, (1.0, 1.0, 2.0, 2.0))
    assert grid.candidate_pairs() == {(0, 1), (0, 2), (1, 2)}
    grid.remove(0)
    assert grid.query((0.0, 0.0, 9.0, 9.0)) == {1, 2}
    assert grid.cell_size == 10.0


def test_new_intersection_is_reported_once():
    world = CollisionWorld()
    food = world.add(Vector2(0, 0), Ball(5.0), FOOD_GROUPS, BodyData(Entity.FOOD, -2))
    herbivore = _herbivore(world, Vector2(100, 100))
    world.update()
    assert world.proximity_events() == []

    world.set_position(herbivore, Vector2(3, 0))
    world.update()
    events = world.proximity_events()
    assert len(events) == 1
    event = events[0]
    assert (event.collider1, event.collider2) == (food, herbivore)
    assert event.prev_status == Proximity.DISJOINT
    assert event.new_status == Proximity.INTERSECTING
    assert world.interactions_with(food) == [herbivore]
    assert world.interactions_with(herbivore) == [food]

    world.update()
    assert world.proximity_events() == []

    world.set_position(herbivore, Vector2(300, 300))
    world.update()
    events = world.proximity_events()
    assert [e.new_status for e in events] == [Proximity.DISJOINT]
    assert world.interactions_with(food) == []


def test_groups_filter_out_pairs():
    world = CollisionWorld()
    _herbivore(world, Vector2(50, 50))
    _herbivore(world, Vector2(52, 50))
    world.update()
    assert world.proximity_events() == []


def test_margin_band_is_not_an_intersection():
    world = CollisionWorld()
    world.add(Vector2(0, 0), Ball(5.0), FOOD_GROUPS, BodyData(Entity.FOOD, -2))
    _herbivore(world, Vector2(15.015, 0))
    world.update()
    events = world.proximity_events()
    assert [e.new_status for e in events] == [Proximity.WITHIN_MARGIN]


def test_ray_hits_nearest_body_of_allowed_groups():
    world = CollisionWorld()
    wall = world.add(Vector2(), Segment((50.0, -100.0), (50.0, 100.0)), WALL_GROUPS, BodyData(Entity.WALL, -1))
    food = world.add(Vector2(30, 0), Ball(5.0), FOOD_GROUPS, BodyData(Entity.FOOD, -2))

    hit = world.cast_ray(Vector2(0, 0), Vector2(1, 0), 150.0, HERBIVORE_RAY_GROUPS)
    assert hit is not None
    assert hit.handle == food
    assert hit.entity == Entity.FOOD
    assert hit.toi == approx(25.0)

    hit = world.cast_ray(Vector2(0, 0), Vector2(1, 0), 150.0, CARNIVORE_RAY_GROUPS)
    assert hit is not None
    assert hit.handle == wall
    assert hit.toi == approx(50.0)

    assert world.cast_ray(Vector2(0, 0), Vector2(1, 0), 40.0, CARNIVORE_RAY_GROUPS) is None
    assert world.cast_ray(Vector2(0, 0), Vector2(-1, 0), 150.0, HERBIVORE_RAY_GROUPS) is None


def test_ray_starting_inside_ball_hits_immediately():
    world = CollisionWorld()
    world.add(Vector2(0, 0), Ball(5.0), FOOD_GROUPS, BodyData(Entity.FOOD, -2))
    hit = world.cast_ray(Vector2(1, 0), Vector2(1, 0), 150.0, HERBIVORE_RAY_GROUPS)
    assert hit is not None
    assert hit.toi == 0.0


def test_translate_and_positions_are_copies():
    world = CollisionWorld()
    handle = _herbivore(world, Vector2(10, 10))
    moved = world.translate(handle, Vector2(2, -3))
    assert moved == Vector2(12, 7)
    position = world.position(handle)
    position.x = 999
    assert world.position(handle) == Vector2(12, 7)


def test_unknown_handle_raises_simulation_error():
    world = CollisionWorld()
    with pytest.raises(SimulationError):
        world.data(42)
    with pytest.raises(SimulationError):
        world.interactions_with(42)


def test_diamond_points_use_a_third_of_the_size():
    assert diamond_points(30.0) == ((0.0, -10.0), (10.0, 0.0), (0.0, 10.0), (-10.0, 0.0))
