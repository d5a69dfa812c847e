"""
BSP Level Data — in-memory view of the compiled lumps the occluder mapper needs.

Records mirror the on-disk structs one-to-one. Relations between lumps are
kept the way the BSP stores them: a parent record holds a (first, count)
range into a sibling list, so a brush owns brushsides[firstside:firstside+numsides]
and an occluder owns occluder_poly_datas[firstpoly:firstpoly+polycount].

Lumps used (filled in by the BSP reader):
    LUMP_PLANES          (1)  — dplane_t
    LUMP_TEXDATA         (2)  — dtexdata_t
    LUMP_VERTEXES        (3)  — dvertex_t
    LUMP_TEXINFO         (6)  — texinfo_t
    LUMP_OCCLUSION       (9)  — doccluderdata_t / doccluderpolydata_t / int indices
    LUMP_BRUSHES         (18) — dbrush_t
    LUMP_BRUSHSIDES      (19) — dbrushside_t
    LUMP_TEXDATA_STRING_TABLE (44) + DATA (43) — material names
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Vec3 = Tuple[float, float, float]


# ─── Content flags (from bspflags.h) ──────────────────────────────────────────

CONTENTS_SOLID      = 0x1
CONTENTS_AREAPORTAL = 0x8000
CONTENTS_DETAIL     = 0x8000000


# ─── BSP Data Structures ─────────────────────────────────────────────────────

@dataclass
class BSPPlane:
    """Parsed dplane_t structure (20 bytes)."""
    normal: Vec3
    dist: float
    type: int = 0


@dataclass
class BSPTexInfo:
    """Parsed texinfo_t structure (72 bytes)."""
    texture_vecs: Tuple[Tuple[float, ...], ...]   # [2][4]
    lightmap_vecs: Tuple[Tuple[float, ...], ...]   # [2][4]
    flags: int
    texdata: int            # -1 = no texdata


@dataclass
class BSPTexData:
    """Parsed dtexdata_t structure (32 bytes)."""
    reflectivity: Vec3
    name_string_table_id: int
    width: int = 0
    height: int = 0
    view_width: int = 0
    view_height: int = 0


@dataclass
class BSPBrush:
    """Parsed dbrush_t structure (12 bytes).

    is_occluder_source is not part of the file. It is set once the brush has
    been identified as the source of a func_occluder, so material assignment
    can ignore the tool texture the compiler left on it.
    """
    firstside: int
    numsides: int
    contents: int
    is_occluder_source: bool = False

    @property
    def is_detail(self) -> bool:
        return bool(self.contents & CONTENTS_DETAIL)

    @property
    def is_areaportal(self) -> bool:
        return bool(self.contents & CONTENTS_AREAPORTAL)


@dataclass
class BSPBrushSide:
    """Parsed dbrushside_t structure (8 bytes)."""
    planenum: int
    texinfo: int            # -1 = no texinfo
    dispinfo: int = -1
    bevel: int = 0


@dataclass
class BSPOccluderData:
    """Parsed doccluderdata_t structure (version 2, 40 bytes)."""
    flags: int
    firstpoly: int
    polycount: int
    mins: Vec3 = (0.0, 0.0, 0.0)
    maxs: Vec3 = (0.0, 0.0, 0.0)
    area: int = 0


@dataclass
class BSPOccluderPolyData:
    """Parsed doccluderpolydata_t structure (12 bytes)."""
    firstvertexindex: int
    vertexcount: int
    planenum: int = 0


@dataclass
class BSPData:
    """The subset of a compiled level the occluder mapper reads.

    All lists are indexed exactly as in the file. Brushes are the only records
    that get modified (is_occluder_source).
    """
    planes: List[BSPPlane] = field(default_factory=list)
    texinfos: List[BSPTexInfo] = field(default_factory=list)
    texdatas: List[BSPTexData] = field(default_factory=list)
    texnames: List[str] = field(default_factory=list)
    vertexes: List[Vec3] = field(default_factory=list)
    brushes: List[BSPBrush] = field(default_factory=list)
    brushsides: List[BSPBrushSide] = field(default_factory=list)
    occluder_datas: List[BSPOccluderData] = field(default_factory=list)
    occluder_poly_datas: List[BSPOccluderPolyData] = field(default_factory=list)
    occluder_vertex_indices: List[int] = field(default_factory=list)

    def brush_sides(self, brush: BSPBrush) -> List[BSPBrushSide]:
        return self.brushsides[brush.firstside:brush.firstside + brush.numsides]

    def side_material(self, side: BSPBrushSide) -> Optional[str]:
        """Resolve a brush side's material via texinfo → texdata → string table.

        Returns None when any link in the chain is missing (e.g. texinfo -1
        on nodraw bevels, or texdata -1).
        """
        if side.texinfo < 0 or side.texinfo >= len(self.texinfos):
            return None
        ti = self.texinfos[side.texinfo]
        if ti.texdata < 0 or ti.texdata >= len(self.texdatas):
            return None
        td = self.texdatas[ti.texdata]
        if td.name_string_table_id < 0 or td.name_string_table_id >= len(self.texnames):
            return None
        return self.texnames[td.name_string_table_id]

    def occluder_polys(self, occluder: BSPOccluderData) -> List[BSPOccluderPolyData]:
        return self.occluder_poly_datas[occluder.firstpoly:occluder.firstpoly + occluder.polycount]

    def occluder_poly_points(self, poly: BSPOccluderPolyData) -> List[Vec3]:
        """Vertex positions of one occluder polygon, in stored winding order."""
        first = poly.firstvertexindex
        indices = self.occluder_vertex_indices[first:first + poly.vertexcount]
        return [self.vertexes[vi] for vi in indices]
