"""
Material Calculator

Quantity and cost estimates for three kinds of work:
- concrete: slab volume = length x width x thickness. "ready-mix" prices
  the volume directly; a mix ratio like "1:2:4" splits it into cement
  bags (7 bags per m3 of the cement share), sand and aggregate.
- brickwork: wall area = length x height, 55 bricks and 0.03 m3 mortar per m2
- steel: reinforcement at 80 kg per m3 of slab

All dimensions are metres. Prices are example unit prices.
"""

from typing import Dict, Optional

from errors import ValidationError

MATERIAL_COSTS = {
    "cement": 8.5,  # per 50kg bag
    "sand": 25.0,  # per m3
    "aggregate": 30.0,  # per m3
    "concrete": 120.0,  # per m3 ready mix
    "bricks": 0.5,  # per brick
    "mortar": 95.0,  # per m3
    "steel": 1.2,  # per kg
}

DEFAULT_THICKNESS = 0.15
CEMENT_BAGS_PER_M3 = 7
BRICKS_PER_M2 = 55
MORTAR_M3_PER_M2 = 0.03
STEEL_KG_PER_M3 = 80

MATERIAL_TYPES = ("concrete", "brickwork", "steel")
MIX_RATIOS = ("1:1.5:3", "1:2:4", "1:3:6", "ready-mix")


def _parse_mix_ratio(mix_ratio: str):
    try:
        parts = [float(p) for p in mix_ratio.split(":")]
    except ValueError:
        raise ValidationError("mix_ratio", f"Invalid mix ratio: {mix_ratio}")
    if len(parts) != 3 or any(p < 0 for p in parts) or sum(parts) <= 0:
        raise ValidationError("mix_ratio", f"Invalid mix ratio: {mix_ratio}")
    return parts


def calculate_materials(
    material_type: str,
    length: Optional[float],
    width: Optional[float],
    height: Optional[float],
    thickness: Optional[float] = None,
    mix_ratio: str = "1:2:4",
) -> Dict[str, float]:
    """
    Returns material quantities plus total_cost.

    Raises ValidationError when length, width or height is missing/zero.
    """
    for field, value in (("length", length), ("width", width), ("height", height)):
        if not value or value <= 0:
            raise ValidationError(field, "Please enter length, width, and height dimensions.")

    thickness = thickness or DEFAULT_THICKNESS
    result: Dict[str, float] = {}

    if material_type == "concrete":
        volume = length * width * thickness
        if mix_ratio == "ready-mix":
            result["concrete"] = volume
            result["total_cost"] = volume * MATERIAL_COSTS["concrete"]
        else:
            cement, sand, aggregate = _parse_mix_ratio(mix_ratio)
            total = cement + sand + aggregate
            cement_bags = volume * cement / total * CEMENT_BAGS_PER_M3
            sand_volume = volume * sand / total
            aggregate_volume = volume * aggregate / total
            result["cement"] = cement_bags
            result["sand"] = sand_volume
            result["aggregate"] = aggregate_volume
            result["total_cost"] = (
                cement_bags * MATERIAL_COSTS["cement"]
                + sand_volume * MATERIAL_COSTS["sand"]
                + aggregate_volume * MATERIAL_COSTS["aggregate"]
            )

    elif material_type == "brickwork":
        wall_area = length * height
        bricks = wall_area * BRICKS_PER_M2
        mortar = wall_area * MORTAR_M3_PER_M2
        result["bricks"] = bricks
        result["mortar"] = mortar
        result["total_cost"] = (
            bricks * MATERIAL_COSTS["bricks"] + mortar * MATERIAL_COSTS["mortar"]
        )

    elif material_type == "steel":
        steel = length * width * thickness * STEEL_KG_PER_M3
        result["steel"] = steel
        result["total_cost"] = steel * MATERIAL_COSTS["steel"]

    else:
        raise ValidationError("material_type", f"Unknown material type: {material_type}")

    return result
