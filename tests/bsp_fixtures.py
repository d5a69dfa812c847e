"""
Hand-built BSP levels for the occluder mapper tests.

Brushes are axis-aligned boxes. Their sides are emitted in the order
-X, +X, -Y, +Y, -Z, +Z, so side k of a box is brush.firstside + k.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from bsp_data import (
    BSPBrush, BSPBrushSide, BSPData, BSPOccluderData, BSPOccluderPolyData,
    BSPPlane, BSPTexData, BSPTexInfo, CONTENTS_SOLID, Vec3,
)
from winding import winding_from_side

NEG_X, POS_X, NEG_Y, POS_Y, NEG_Z, POS_Z = range(6)

OCCLUDER = 'tools/toolsoccluder'
AREAPORTAL = 'tools/toolsareaportal'
TRIGGER = 'TOOLS/TOOLSTRIGGER'
NODRAW = 'tools/toolsnodraw'
BRICK = 'brick/brickwall001a'

_ZERO_VECS = ((0.0, 0.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0))


class LevelBuilder:
    """Builds a BSPData one brush / occluder at a time."""

    def __init__(self):
        self.bsp = BSPData()
        self._texinfo_by_material: Dict[str, int] = {}

        # A texinfo without texdata, as found on some compiler-generated sides
        self.no_texdata_texinfo = len(self.bsp.texinfos)
        self.bsp.texinfos.append(BSPTexInfo(_ZERO_VECS, _ZERO_VECS, 0, -1))

    def texinfo(self, material: Optional[str]) -> int:
        if material is None:
            return -1
        if material not in self._texinfo_by_material:
            self.bsp.texnames.append(material)
            self.bsp.texdatas.append(BSPTexData((0.5, 0.5, 0.5), len(self.bsp.texnames) - 1))
            self.bsp.texinfos.append(BSPTexInfo(_ZERO_VECS, _ZERO_VECS, 0,
                                                len(self.bsp.texdatas) - 1))
            self._texinfo_by_material[material] = len(self.bsp.texinfos) - 1
        return self._texinfo_by_material[material]

    def add_plane(self, normal: Vec3, dist: float) -> int:
        self.bsp.planes.append(BSPPlane(normal, dist))
        return len(self.bsp.planes) - 1

    def add_box(self, mins: Vec3, maxs: Vec3,
                materials: Optional[Dict[int, Optional[str]]] = None,
                contents: int = CONTENTS_SOLID,
                default: Optional[str] = NODRAW) -> int:
        """Add a box brush. materials maps side slot (NEG_X..POS_Z) to a material."""
        materials = materials or {}
        planes = [
            ((-1.0, 0.0, 0.0), -mins[0]),
            ((1.0, 0.0, 0.0), maxs[0]),
            ((0.0, -1.0, 0.0), -mins[1]),
            ((0.0, 1.0, 0.0), maxs[1]),
            ((0.0, 0.0, -1.0), -mins[2]),
            ((0.0, 0.0, 1.0), maxs[2]),
        ]
        firstside = len(self.bsp.brushsides)
        for slot, (normal, dist) in enumerate(planes):
            self.bsp.brushsides.append(BSPBrushSide(
                planenum=self.add_plane(normal, dist),
                texinfo=self.texinfo(materials.get(slot, default)),
            ))
        self.bsp.brushes.append(BSPBrush(firstside, len(planes), contents))
        return len(self.bsp.brushes) - 1

    def side_winding(self, brush_index: int, slot: int) -> List[Vec3]:
        brush = self.bsp.brushes[brush_index]
        return winding_from_side(self.bsp, brush, self.bsp.brushsides[brush.firstside + slot])

    def add_occluder(self, polys: Sequence[Sequence[Vec3]]) -> int:
        """Add an occluder whose polygons have exactly the given points."""
        firstpoly = len(self.bsp.occluder_poly_datas)
        for points in polys:
            first_index = len(self.bsp.occluder_vertex_indices)
            for p in points:
                self.bsp.vertexes.append(tuple(p))
                self.bsp.occluder_vertex_indices.append(len(self.bsp.vertexes) - 1)
            self.bsp.occluder_poly_datas.append(
                BSPOccluderPolyData(first_index, len(points)))
        self.bsp.occluder_datas.append(BSPOccluderData(0, firstpoly, len(polys)))
        return len(self.bsp.occluder_datas) - 1

    def add_brush_occluder(self, faces: Sequence[tuple], rotate: int = 0) -> int:
        """Add an occluder built from (brush index, side slot) windings.

        rotate shifts each polygon's starting vertex, the way VBSP may.
        """
        polys = []
        for brush_index, slot in faces:
            w = self.side_winding(brush_index, slot)
            polys.append(w[rotate:] + w[:rotate])
        return self.add_occluder(polys)
