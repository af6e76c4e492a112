import math
import random
from collections import Counter

import numpy as np
import pytest

from racking.identity import ComponentKind
from racking.layout import (
    BASE_CLEARANCE,
    PalletDraw,
    Role,
    layout_rack,
    pallet_rng,
    rack_center,
    rack_dimensions,
    rack_footprint,
    world_bounds,
)
from racking.models import Position, Rack, RackConfig


def make_rack(rack_id="rack-1", **config):
    return Rack(id=rack_id, name="Rack 1", config=RackConfig(**config))


def addressable_counts(elements):
    return Counter(e.kind for e in elements if e.addressable)


def test_counts_for_default_rack():
    counts = addressable_counts(layout_rack(make_rack()))
    b, l = 3, 4
    assert counts[ComponentKind.UPRIGHT] == 2 * (b + 1)
    assert counts[ComponentKind.CONNECTOR] == (b + 1) * (l + 1)
    assert counts[ComponentKind.BRACE] == b * l
    assert counts[ComponentKind.BEAM] == 2 * b * l
    assert counts[ComponentKind.CROSSBAR] == 3 * b * l
    assert counts[ComponentKind.DECK] == b * l
    assert counts[ComponentKind.PALLET] == 0


def test_deck_members_share_the_deck_id():
    elements = layout_rack(make_rack(bays=1, levels=1))
    deck = [e for e in elements if e.kind == ComponentKind.DECK]
    assert len(deck) == 16
    assert sum(e.addressable for e in deck) == 1
    assert {e.component_id for e in deck} == {"rack-1-deck-0-1"}
    assert all(e.role == Role.DECK_MEMBER for e in deck)


def test_decks_can_be_hidden():
    counts = addressable_counts(layout_rack(make_rack(show_wire_decks=False)))
    assert counts[ComponentKind.DECK] == 0


def test_layout_is_deterministic_without_pallets():
    a = [(e.component_id, e.center, e.size) for e in layout_rack(make_rack())]
    b = [(e.component_id, e.center, e.size) for e in layout_rack(make_rack())]
    assert a == b


def test_level_index_ranges():
    elements = layout_rack(make_rack(bays=2, levels=3))
    levels = {}
    for e in elements:
        if e.addressable and e.kind != ComponentKind.UPRIGHT:
            levels.setdefault(e.kind, set()).add(e.meta.level)
    assert levels[ComponentKind.CONNECTOR] == {0, 1, 2, 3}
    assert levels[ComponentKind.BRACE] == {0, 1, 2}
    assert levels[ComponentKind.BEAM] == {1, 2, 3}
    assert levels[ComponentKind.CROSSBAR] == {1, 2, 3}


@pytest.mark.parametrize("bays,levels", [(0, 4), (3, 0)])
def test_zero_bays_or_levels_yield_an_empty_layout(bays, levels):
    cfg = RackConfig.model_construct(bays=bays, levels=levels)
    rack = Rack(id="rack-1", name="Rack 1", config=cfg)
    assert layout_rack(rack) == []


def test_full_and_empty_pallet_fill():
    full = layout_rack(make_rack(show_pallets=True, pallet_fill=100), random.Random(1))
    assert addressable_counts(full)[ComponentKind.PALLET] == 12
    boxes = [e for e in full if e.role == Role.LOAD_BOX]
    assert len(boxes) == 12
    assert all(e.decoration and not e.addressable for e in boxes)
    assert all(0.3 <= e.size[1] <= 0.8 for e in boxes)

    empty = layout_rack(make_rack(show_pallets=True, pallet_fill=0), random.Random(1))
    assert addressable_counts(empty)[ComponentKind.PALLET] == 0


def test_seeded_pallet_draw_is_stable_until_config_changes():
    rack = make_rack(bays=6, levels=5, show_pallets=True, pallet_fill=50)

    def pallets(r):
        return [e.component_id for e in layout_rack(r, pallet_rng(r, PalletDraw.SEEDED)) if e.kind == ComponentKind.PALLET]

    assert pallets(rack) == pallets(rack)
    assert pallet_rng(rack, PalletDraw.SEEDED).random() != pallet_rng(
        rack.model_copy(update={"config": rack.config.edited(pallet_fill=51)}), PalletDraw.SEEDED
    ).random()


def test_upright_spans_full_height():
    rack = make_rack(levels=4, level_height=1.5)
    upright = next(e for e in layout_rack(rack) if e.kind == ComponentKind.UPRIGHT)
    assert upright.size[1] == pytest.approx(4 * 1.5 + BASE_CLEARANCE)
    lo, hi = world_bounds(upright, rack)
    assert lo[1] == pytest.approx(0.0)
    assert hi[1] == pytest.approx(6.3)


def test_rack_transform_rotates_about_vertical_axis():
    rack = Rack(id="rack-1", name="Rack 1", position=Position(x=10, z=2), rotation=math.pi / 2)
    corners = rack_footprint(rack)
    width, depth, _ = rack_dimensions(rack)
    # bays run along -z after a quarter turn
    assert corners[:, 1].min() == pytest.approx(2 - width - 0.04)
    assert corners[:, 0].max() == pytest.approx(10 + depth / 2)


def test_rack_center():
    rack = Rack(id="rack-1", name="Rack 1", position=Position(x=5, z=-1))
    assert np.allclose(rack_center(rack), [5 + 3 * 2.7 / 2, 4 * 1.5 / 2, -1])
