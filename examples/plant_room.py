"""Plant room: proof of concept.

One room: 6m x 4m, 3m high, in millimeters
- 4 walls (200mm thick)
- 1 floor slab above (250mm thick)
- 2 supply ducts side by side through the south wall (they merge into a cluster)
- 1 insulated riser pipe up through the slab
- 1 cable tray through the east wall

   N
   ↑
   |
   +--- E

Layout (top view):
   (0,4000) ------------ (6000,4000)
      |                      |
   W  |      plant room      |  E  <- tray
      |          o riser     |
   (0,0) ---------------- (6000,0)
          ↑↑ S (ducts here)
"""

from pathlib import Path

from mep_sleeves.export.plan import render_plan
from mep_sleeves.geometry.units import LengthUnit
from mep_sleeves.models import (
    BoundingBox3D,
    HostKind,
    MepCategory,
    ModelDocument,
    OpeningClass,
    OpeningTemplate,
    PlacementSettings,
    Point3D,
    RoutingElement,
    Solid,
    StructuralHost,
)
from mep_sleeves.placement import place_openings
from mep_sleeves.placement.cleanup import assign_marks
from mep_sleeves.store import DocumentStore

# Room dimensions
WIDTH = 6000.0   # x-axis
DEPTH = 4000.0   # y-axis
HEIGHT = 3000.0  # wall height
WALL_T = 200.0   # wall thickness
SLAB_T = 250.0   # slab thickness

doc = ModelDocument(name="Plant Room", units=LengthUnit.MILLIMETERS)
gf = doc.add_level("GF", elevation=0.0)

# --- Templates ---
for kind in HostKind:
    for category in MepCategory:
        for cls in OpeningClass:
            doc.add_template(OpeningTemplate(
                name=f"Sleeve {kind.value} {category.value} {cls.value}",
                host_kind=kind,
                category=category,
                opening_class=cls,
            ))


# --- Walls ---
def wall(name: str, start: tuple[float, float], end: tuple[float, float]) -> StructuralHost:
    a = Point3D(x=start[0], y=start[1], z=0)
    b = Point3D(x=end[0], y=end[1], z=0)
    return StructuralHost(
        name=name,
        kind=HostKind.WALL,
        solid=Solid.from_wall(a, b, WALL_T, HEIGHT),
        thickness=WALL_T,
        centerline=[a, b],
        level_id=gf.global_id,
    )


doc.structural_hosts += [
    wall("South Wall", (0, 0), (WIDTH, 0)),
    wall("East Wall", (WIDTH, 0), (WIDTH, DEPTH)),
    wall("North Wall", (WIDTH, DEPTH), (0, DEPTH)),
    wall("West Wall", (0, DEPTH), (0, 0)),
]

# --- Slab above ---
doc.structural_hosts.append(StructuralHost(
    name="Roof Slab",
    kind=HostKind.FLOOR,
    bbox=BoundingBox3D(
        min=Point3D(x=0, y=0, z=HEIGHT),
        max=Point3D(x=WIDTH, y=DEPTH, z=HEIGHT + SLAB_T),
    ),
    thickness=SLAB_T,
    level_id=gf.global_id,
))

# --- Routing ---
for x in (2000.0, 2350.0):
    doc.routing_elements.append(RoutingElement(
        name=f"Supply {x:.0f}",
        category=MepCategory.DUCT,
        centerline=[Point3D(x=x, y=-1000, z=2200), Point3D(x=x, y=1500, z=2200)],
        width=300,
        height=200,
        level_id=gf.global_id,
    ))

doc.routing_elements.append(RoutingElement(
    name="Riser",
    category=MepCategory.PIPE,
    centerline=[Point3D(x=4500, y=2500, z=1000), Point3D(x=4500, y=2500, z=4000)],
    diameter=110,
    insulation_thickness=25,
    level_id=gf.global_id,
))

doc.routing_elements.append(RoutingElement(
    name="Tray",
    category=MepCategory.CABLE_TRAY,
    centerline=[Point3D(x=5000, y=3000, z=2600), Point3D(x=7000, y=3000, z=2600)],
    width=400,
    height=100,
    level_id=gf.global_id,
))

# --- Place ---
settings = PlacementSettings(probe_proximity_cutoff=150.0)
report = place_openings(doc, settings)

# --- Marks ---
store = DocumentStore(doc)
with store.transaction("Assign opening marks"):
    assign_marks(store)

print(f"Run: {report.summary_line()}, clusters={report.clusters_placed}, deleted={report.openings_deleted}")
for opening in doc.openings:
    print(
        f"  {opening.mark:8s} {opening.opening_class.value:10s} {opening.category.value:10s} {opening.host_kind.value:6s} "
        f"{opening.width:.0f} x {opening.height:.0f} x {opening.depth:.0f} at "
        f"({opening.position.x:.0f}, {opening.position.y:.0f}, {opening.position.z:.0f})"
    )

out = Path(__file__).parent / "output"
doc.save(out / "plant_room.json")
render_plan(doc, out / "plant_room.png", level_id=gf.global_id, show_labels=True)
print(f"Saved to {out}")
