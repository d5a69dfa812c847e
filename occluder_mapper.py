"""
Occluder Mapper — recover which brushes each func_occluder was compiled from.

VBSP turns every func_occluder brush into occluder polygons (LUMP_OCCLUSION)
and drops the link back to the brush. It also tends to relabel the occluder
faces: with areaportals in the map they come out as tools/toolsareaportal,
and sometimes as tools/toolstrigger. All three materials therefore mark a
side as a possible occluder face.

Two strategies map occluders back to brushes:
  1. Ordered — VBSP emits occluders in brush order, so when the number of
     occluder-textured brush sides equals the number of occluder polygons,
     polygons can be handed out to the candidate brushes in sequence.
  2. Manual — compare every occluder polygon against every candidate brush
     side's winding (rotation-invariant). Slow, but tolerates any ordering.

Usage:
    mapper = OccluderMapper(bsp, OccluderConfig())
    mapping = mapper.get_occ_brush_mapping()   # {occluder index: [brush index, ...]}
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

from bsp_data import BSPBrush, BSPData, BSPOccluderPolyData, Vec3
from occluder_config import OccluderConfig, OccMappingMode
from winding import Winding, winding_from_side

TOOLS_TRIGGER = 'tools/toolstrigger'
TOOLS_OCCLUDER = 'tools/toolsoccluder'
TOOLS_AREAPORTAL = 'tools/toolsareaportal'

OCCLUDER_MATERIALS = frozenset((TOOLS_TRIGGER, TOOLS_OCCLUDER, TOOLS_AREAPORTAL))

OccBrushMapping = Dict[int, List[int]]


def matches_occluder(material: Optional[str]) -> bool:
    """True if the material is one a compiled occluder face can carry."""
    return material is not None and material.lower() in OCCLUDER_MATERIALS


def windings_match(occ_points: Sequence[Vec3], winding: Sequence[Vec3]) -> bool:
    """Test if an occluder polygon is the same polygon as a brush side winding.

    Both must have the same vertices in the same cyclic order, but may start
    at a different vertex. Reversed order does not match.
    """
    n = len(winding)
    if n == 0 or len(occ_points) != n:
        return False

    for offset in range(n):
        for k in range(n):
            if occ_points[k] != winding[(k + offset) % n]:
                break
        else:
            return True
    return False


def occluder_source_brushes(mapping: OccBrushMapping) -> Set[int]:
    """All brush indices referenced by a mapping."""
    return {brush_index for brushes in mapping.values() for brush_index in brushes}


def flag_occluder_brushes(bsp: BSPData, mapping: OccBrushMapping) -> None:
    """Mark every brush in the mapping as an occluder source.

    The texture builder needs this: the side that represented the occluder
    almost always has the wrong tool texture after compile.
    """
    for brush_index in occluder_source_brushes(mapping):
        bsp.brushes[brush_index].is_occluder_source = True


class OccluderMapper:
    """Maps occluder entities of a compiled BSP to their original brushes."""

    def __init__(self, bsp: BSPData, config: OccluderConfig):
        self.bsp = bsp
        self.config = config
        self._winding_cache: Dict[int, Winding] = {}

        # Brush indices, in brush order
        self.potential_occluder_brushes: List[int] = self._find_potential_occluder_brushes()
        # Brush index → number of occluder-textured sides
        self.occluder_faces: Dict[int, int] = {
            bi: self._count_occluder_sides(self.bsp.brushes[bi])
            for bi in self.potential_occluder_brushes
        }

    # ─── Candidate selection ──────────────────────────────────────────────────

    def _count_occluder_sides(self, brush: BSPBrush) -> int:
        return sum(1 for side in self.bsp.brush_sides(brush)
                   if matches_occluder(self.bsp.side_material(side)))

    def _find_potential_occluder_brushes(self) -> List[int]:
        """Non-detail, non-areaportal brushes with at least one occluder-textured side."""
        result = []
        for bi, brush in enumerate(self.bsp.brushes):
            if brush.is_detail or brush.is_areaportal:
                continue
            if any(matches_occluder(self.bsp.side_material(side))
                   for side in self.bsp.brush_sides(brush)):
                result.append(bi)
        return result

    def total_occluder_faces(self) -> int:
        return sum(self.occluder_faces.values())

    def total_occluder_polys(self) -> int:
        return sum(occ.polycount for occ in self.bsp.occluder_datas)

    # ─── Manual (geometric) mapping ───────────────────────────────────────────

    def _side_winding(self, brush: BSPBrush, side_index: int) -> Winding:
        winding = self._winding_cache.get(side_index)
        if winding is None:
            winding = winding_from_side(self.bsp, brush, self.bsp.brushsides[side_index])
            self._winding_cache[side_index] = winding
        return winding

    def _find_poly_brush(self, poly: BSPOccluderPolyData) -> Optional[int]:
        """First candidate brush with a side matching the polygon, or None."""
        occ_points = self.bsp.occluder_poly_points(poly)
        for bi in self.potential_occluder_brushes:
            brush = self.bsp.brushes[bi]
            for side_index in range(brush.firstside, brush.firstside + brush.numsides):
                if windings_match(occ_points, self._side_winding(brush, side_index)):
                    return bi
        return None

    def manual_mapping(self) -> OccBrushMapping:
        """Map every occluder by matching each of its polygons to a brush side."""
        mapping: OccBrushMapping = {}
        unmatched = 0
        for oi, occ in enumerate(self.bsp.occluder_datas):
            brushes = []
            for poly in self.bsp.occluder_polys(occ):
                bi = self._find_poly_brush(poly)
                if bi is None:
                    unmatched += 1
                    continue
                brushes.append(bi)
            mapping[oi] = brushes

        if self.config.verbose and unmatched:
            print(f"  {unmatched} occluder polygons matched no brush side", flush=True)
        return mapping

    # ─── Ordered mapping ──────────────────────────────────────────────────────

    def _orderable_occluder_count(self) -> int:
        """Number of leading occluders whose polygons the candidate faces can cover."""
        budget = min(self.total_occluder_faces(), self.total_occluder_polys())
        count = 0
        for occ in self.bsp.occluder_datas:
            if occ.polycount > budget:
                break
            budget -= occ.polycount
            count += 1
        return count

    def ordered_mapping(self) -> OccBrushMapping:
        """Hand out candidate brushes to occluders in ascending brush order.

        A brush contributes occluder_faces[brush] polygons. When an occluder
        needs fewer polygons than the current brush has left, the brush stays
        current and its leftover (carried as a negative remainder) is used up
        by the following occluder(s).
        """
        candidates = self.potential_occluder_brushes
        mapping: OccBrushMapping = {}

        cursor = 0
        remaining = 0   # < 0: current brush still has -remaining faces
        for oi in range(self._orderable_occluder_count()):
            brushes = []
            needed = self.bsp.occluder_datas[oi].polycount
            if needed <= 0:
                # Empty occluder, keep the carried leftover for the next one
                mapping[oi] = brushes
                continue

            while needed > 0 and cursor < len(candidates):
                bi = candidates[cursor]
                brushes.append(bi)
                if remaining < 0:
                    needed += remaining
                else:
                    needed -= self.occluder_faces[bi]
                remaining = 0

                if needed >= 0:
                    cursor += 1
            remaining = needed
            mapping[oi] = brushes

            if needed > 0:
                print(f"  WARNING: ran out of occluder brushes at occluder {oi}", flush=True)
                break

        return mapping

    # ─── Entry point ──────────────────────────────────────────────────────────

    def map_with(self, mode: OccMappingMode) -> OccBrushMapping:
        if mode is OccMappingMode.ORDERED:
            return self.ordered_mapping()
        return self.manual_mapping()

    def get_occ_brush_mapping(self) -> OccBrushMapping:
        """Create the occluder → brushes mapping and flag the source brushes.

        Uses the ordered method when the number of occluder faces on candidate
        brushes equals the number of compiled occluder polygons, otherwise
        falls back to manual matching. A forced mode in the config wins.
        """
        if not self.config.write_occluders:
            return {}

        if self.config.occ_force_mapping:
            mode = self.config.occ_mapping_mode
            print(f"  Forced occluder method: '{mode}'", flush=True)
        else:
            num_faces = self.total_occluder_faces()
            num_polys = self.total_occluder_polys()
            if num_faces == num_polys:
                mode = OccMappingMode.ORDERED
                print(f"  Equal amount of occluder faces ({num_faces}) as occluder "
                      f"brush faces. Using '{mode}' method", flush=True)
            else:
                mode = OccMappingMode.MANUAL
                print(f"  Unequal amount of occluder faces ({num_faces}) as occluder "
                      f"brush faces ({num_polys}). Falling back to '{mode}' method",
                      flush=True)

        mapping = self.map_with(mode)
        flag_occluder_brushes(self.bsp, mapping)

        if self.config.verbose:
            for oi, brushes in mapping.items():
                print(f"    occluder {oi}: brushes {brushes}", flush=True)
            print(f"  Mapped {len(mapping)} occluders to "
                  f"{len(occluder_source_brushes(mapping))} brushes", flush=True)

        return mapping


def map_occluders(bsp: BSPData, config: Optional[OccluderConfig] = None) -> OccBrushMapping:
    """Convenience wrapper: build a mapper and return its mapping."""
    return OccluderMapper(bsp, config or OccluderConfig()).get_occ_brush_mapping()
