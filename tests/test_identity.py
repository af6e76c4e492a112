import pytest

from racking.identity import (
    ComponentKind,
    ComponentRef,
    Side,
    belongs_to_rack,
    component_id,
    component_label,
    parse_component_id,
    rack_inspection_id,
    validate_rack_id,
)
from racking.layout import layout_rack
from racking.models import Rack, RackConfig


def test_id_formats():
    assert component_id("rack-1", ComponentKind.UPRIGHT, 0, side=Side.FRONT) == "rack-1-upright-0-front"
    assert component_id("rack-1", ComponentKind.CONNECTOR, 2, level=0) == "rack-1-connector-2-0"
    assert component_id("rack-1", ComponentKind.BRACE, 1, level=3) == "rack-1-brace-1-3"
    assert component_id("rack-1", ComponentKind.BEAM, 0, level=1, side=Side.BACK) == "rack-1-beam-0-1-back"
    assert component_id("rack-1", ComponentKind.CROSSBAR, 0, level=1, index=2) == "rack-1-crossbar-0-1-2"
    assert component_id("rack-1", ComponentKind.DECK, 2, level=4) == "rack-1-deck-2-4"
    assert component_id("rack-1", ComponentKind.PALLET, 2, level=4) == "rack-1-pallet-2-4"


def test_missing_or_extra_index_is_rejected():
    with pytest.raises(ValueError):
        component_id("rack-1", ComponentKind.BEAM, 0, level=1)
    with pytest.raises(ValueError):
        component_id("rack-1", ComponentKind.UPRIGHT, 0, side=Side.FRONT, level=1)
    with pytest.raises(ValueError):
        component_id("rack-1", ComponentKind.CROSSBAR, 0, level=1)
    with pytest.raises(ValueError):
        component_id("rack-1", ComponentKind.DECK, -1, level=1)


def test_ids_are_unique_within_a_rack():
    rack = Rack(id="rack-1", name="Rack 1", config=RackConfig(bays=4, levels=5, show_pallets=True, pallet_fill=100))
    ids = [e.component_id for e in layout_rack(rack) if e.addressable]
    assert len(ids) == len(set(ids))


def test_parse_inverts_component_id():
    for cid in ("rack-1-beam-0-1-front", "rack-1-crossbar-2-3-1", "rack-12-upright-4-back", "my-rack-deck-0-1"):
        ref = parse_component_id(cid)
        assert ref is not None
        assert ref.component_id == cid
    assert parse_component_id("my-rack-deck-0-1").rack_id == "my-rack"


@pytest.mark.parametrize("cid", ["", "rack-1-rack", "rack-1-beam-0-1", "rack-1-beam-01-1-front", "nonsense"])
def test_parse_rejects_strings_outside_the_scheme(cid):
    assert parse_component_id(cid) is None


def test_validate_rack_id():
    assert validate_rack_id("rack-1") == "rack-1"
    for bad in ("", "a-beam-b", "has space", "rack-"):
        with pytest.raises(ValueError):
            validate_rack_id(bad)


def test_rack_inspection_and_membership():
    assert rack_inspection_id("rack-1") == "rack-1-rack"
    assert belongs_to_rack("rack-1-beam-0-1-front", "rack-1")
    assert belongs_to_rack("rack-1-rack", "rack-1")
    assert not belongs_to_rack("rack-10-beam-0-1-front", "rack-1")


def test_membership_when_one_rack_id_extends_another():
    assert belongs_to_rack("aisle-beam-0-1-front", "aisle")
    assert belongs_to_rack("aisle-rack", "aisle")
    assert not belongs_to_rack("aisle-2-beam-0-1-front", "aisle")
    assert not belongs_to_rack("aisle-2-rack", "aisle")
    assert belongs_to_rack("aisle-2-beam-0-1-front", "aisle-2")
    assert belongs_to_rack("aisle-2-rack", "aisle-2")
    assert not belongs_to_rack("aisle-2-notes", "aisle")


def test_component_label():
    ref = ComponentRef("rack-1", ComponentKind.BEAM, 0, level=1, side=Side.FRONT)
    assert component_label("Rack 1", ref) == "Rack 1 - Beam 1-1 (front)"
    brace = ComponentRef("rack-1", ComponentKind.BRACE, 0, level=0)
    assert component_label("Rack 1", brace) == "Rack 1 - Cross Brace 1-1"
