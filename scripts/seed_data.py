import random
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path for imports
_root = Path(__file__).parent.parent.resolve()
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from racking.collection import RackCollection
from racking.identity import ComponentKind, Side, component_id
from racking.models import HealthStatus, MaintenanceType, RecordStatus, utcnow
from racking.records import HealthMap, MaintenanceLog
from streamlit_app.lib import data_access as da

random.seed(42)

DATA = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("data")
DATA.mkdir(exist_ok=True)

# Racks: the default one plus a wider copy and a tall narrow one
racks = RackCollection()
wide = racks.add_rack()
racks.update_config(wide.id, bays=5, levels=3, show_pallets=True, pallet_fill=60)
tall = racks.add_rack()
racks.update_config(tall.id, bays=2, levels=6, bay_width=1.8, frame_color="#2f855a")
racks.rename_rack(tall.id, "Cold Store")
racks.select("rack-1")

# Maintenance history over the last 120 days
technicians = ["Ava", "Ben", "Chen", "Dia", "Eli"]
descriptions = {
    MaintenanceType.INSPECTION: ["Visual inspection, no issues", "Annual inspection", "Checked plumb and anchors"],
    MaintenanceType.REPAIR: ["Straightened bent flange", "Replaced missing safety pin"],
    MaintenanceType.REPLACEMENT: ["Replaced impacted beam", "Swapped damaged upright"],
    MaintenanceType.CLEANING: ["Cleared debris from decks"],
    MaintenanceType.UPGRADE: ["Fitted column guard"],
    MaintenanceType.DAMAGE_REPORT: ["Forklift impact at base", "Dent on front face"],
}

now = utcnow()
log = MaintenanceLog()
health = HealthMap()

for rack in racks:
    cfg = rack.config
    candidates = [component_id(rack.id, ComponentKind.UPRIGHT, b, side=s) for b in range(cfg.bays + 1) for s in Side]
    candidates += [
        component_id(rack.id, ComponentKind.BEAM, b, level=lv, side=s)
        for b in range(cfg.bays) for lv in range(1, cfg.levels + 1) for s in Side
    ]
    candidates += [component_id(rack.id, ComponentKind.DECK, b, level=1) for b in range(cfg.bays)]

    for cid in random.sample(candidates, k=min(8, len(candidates))):
        for _ in range(random.randint(1, 3)):
            rtype = random.choice(list(MaintenanceType))
            log.add(
                cid,
                rtype,
                random.choice(descriptions[rtype]),
                technician=random.choice(technicians),
                status=random.choices(list(RecordStatus), weights=[6, 2, 1, 1])[0],
                now=now - timedelta(days=random.randint(0, 120), hours=random.randint(0, 23)),
            )
        health.set(cid, random.choices(list(HealthStatus), weights=[5, 3, 2, 1])[0])

    log.add_rack_inspection(
        rack.id,
        "Quarterly rack inspection",
        technician=random.choice(technicians),
        now=now - timedelta(days=random.randint(5, 60)),
    )

da.save_racks(racks, DATA)
da.save_maintenance(log, DATA)
da.save_health(health, DATA)

print(f"Wrote {len(racks)} racks, {len(log)} records, {len(health)} health ratings to {DATA}/")
