"""
Component identity scheme.

Every structural member of a rack is addressed by a string derived only from
the rack id, the member kind and its positional indices. Maintenance records
and health entries store this string as a foreign key, so the format below is
a durable contract: changing it orphans every stored record.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DELIMITER = "-"
RACK_INSPECTION_SUFFIX = "rack"


class ComponentKind(str, Enum):
    UPRIGHT = "upright"
    CONNECTOR = "connector"
    BRACE = "brace"
    BEAM = "beam"
    CROSSBAR = "crossbar"
    DECK = "deck"
    PALLET = "pallet"


class Side(str, Enum):
    FRONT = "front"
    BACK = "back"


# Which positional indices each kind carries, in id order after the bay.
_SHAPE = {
    ComponentKind.UPRIGHT: ("side",),
    ComponentKind.CONNECTOR: ("level",),
    ComponentKind.BRACE: ("level",),
    ComponentKind.BEAM: ("level", "side"),
    ComponentKind.CROSSBAR: ("level", "index"),
    ComponentKind.DECK: ("level",),
    ComponentKind.PALLET: ("level",),
}

_KIND_TOKENS = "|".join(k.value for k in ComponentKind)
_ID_RE = re.compile(
    rf"^(?P<rack>.+)-(?P<kind>{_KIND_TOKENS})-(?P<bay>\d+)"
    rf"(?:-(?P<a>\d+|front|back))?(?:-(?P<b>\d+|front|back))?$"
)
_FORBIDDEN_IN_RACK_ID = re.compile(rf"-({_KIND_TOKENS})-|\s")


@dataclass(frozen=True)
class ComponentRef:
    """Parsed form of a component id."""

    rack_id: str
    kind: ComponentKind
    bay: int
    level: Optional[int] = None
    side: Optional[Side] = None
    index: Optional[int] = None

    @property
    def component_id(self) -> str:
        return component_id(self.rack_id, self.kind, self.bay, self.level, self.side, self.index)


def validate_rack_id(rack_id: str) -> str:
    """Reject rack ids that could make two component ids collide."""
    if not rack_id or _FORBIDDEN_IN_RACK_ID.search(rack_id) or rack_id.endswith(DELIMITER):
        raise ValueError(f"invalid rack id: {rack_id!r}")
    return rack_id


def component_id(
    rack_id: str,
    kind: ComponentKind,
    bay: int,
    level: Optional[int] = None,
    side: Optional[Side] = None,
    index: Optional[int] = None,
) -> str:
    """
    Build the id of one structural member.

    Args:
        rack_id: Owning rack id (see validate_rack_id)
        kind: Member kind
        bay: Bay index (bay boundary index for uprights/connectors/braces)
        level: Level index, required for every kind except uprights
        side: Front/back, required for uprights and beams
        index: Sub-index, required for crossbars

    Returns:
        e.g. "rack-1-beam-0-1-front"
    """
    kind = ComponentKind(kind)
    given = {"level": level, "side": side, "index": index}
    shape = _SHAPE[kind]
    for name, value in given.items():
        if name in shape and value is None:
            raise ValueError(f"{kind.value} id requires {name}")
        if name not in shape and value is not None:
            raise ValueError(f"{kind.value} id does not take {name}")
    if bay < 0 or (level is not None and level < 0) or (index is not None and index < 0):
        raise ValueError("indices must be non-negative")

    parts = [rack_id, kind.value, str(int(bay))]
    for name in shape:
        value = given[name]
        parts.append(Side(value).value if name == "side" else str(int(value)))
    return DELIMITER.join(parts)


def rack_inspection_id(rack_id: str) -> str:
    """Pseudo-component that holds rack-level inspection records."""
    return f"{rack_id}{DELIMITER}{RACK_INSPECTION_SUFFIX}"


def belongs_to_rack(cid: str, rack_id: str) -> bool:
    """Membership by parsed rack id, so rack "aisle" never claims "aisle-2-*" ids."""
    if cid == rack_inspection_id(rack_id):
        return True
    ref = parse_component_id(cid)
    return ref is not None and ref.rack_id == rack_id


def parse_component_id(cid: str) -> Optional[ComponentRef]:
    """Inverse of component_id. Returns None for strings outside the scheme."""
    m = _ID_RE.match(cid or "")
    if not m:
        return None
    kind = ComponentKind(m.group("kind"))
    shape = _SHAPE[kind]
    extras = [v for v in (m.group("a"), m.group("b")) if v is not None]
    if len(extras) != len(shape):
        return None

    values = {}
    for name, raw in zip(shape, extras):
        if name == "side":
            if raw not in ("front", "back"):
                return None
            values[name] = Side(raw)
        else:
            if not raw.isdigit():
                return None
            values[name] = int(raw)

    ref = ComponentRef(rack_id=m.group("rack"), kind=kind, bay=int(m.group("bay")), **values)
    # Round-trip guard: reject non-canonical spellings such as "beam-01-1-front"
    if ref.component_id != cid:
        return None
    return ref


def component_label(rack_name: str, ref: ComponentRef) -> str:
    """Human readable label shown in panels and the timeline."""
    bay = ref.bay + 1
    if ref.kind == ComponentKind.UPRIGHT:
        text = f"Upright {bay} ({ref.side.value})"
    elif ref.kind == ComponentKind.BRACE:
        text = f"Cross Brace {bay}-{ref.level + 1}"
    elif ref.kind == ComponentKind.CONNECTOR:
        text = f"Frame Connector {bay}-{ref.level}"
    elif ref.kind == ComponentKind.BEAM:
        text = f"Beam {bay}-{ref.level} ({ref.side.value})"
    elif ref.kind == ComponentKind.CROSSBAR:
        text = f"Cross Bar {bay}-{ref.level}-{ref.index + 1}"
    elif ref.kind == ComponentKind.DECK:
        text = f"Wire Deck {bay}-{ref.level}"
    else:
        text = f"Pallet Position {bay}-{ref.level}"
    return f"{rack_name} - {text}"
