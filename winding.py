"""
Winding Builder — derives brush side polygons from compiled BSP planes.

Compiled brushes keep only their planes, not their vertices. A side's polygon
is rebuilt the same way VBSP builds it: start from a huge quad lying on the
side's plane and clip it by every other side of the brush, keeping the part
inside the brush. Vertices are then snapped the way VBSP snaps them when it
writes LUMP_VERTEXES, so the result can be compared point-for-point against
compiled occluder polygons.
"""
from __future__ import annotations

import math
from typing import List

import numpy as np

from bsp_data import BSPBrush, BSPBrushSide, BSPData, BSPPlane, Vec3

Winding = List[Vec3]

# Half-size of the initial winding. Anything larger than the map bounds works.
MAX_COORD = 65536.0

CLIP_EPSILON = 0.01

# VBSP rounds vertex components this close to an integer (GetVertexnum)
INTEGRAL_EPSILON = 0.01


# ─── Vector math utilities ────────────────────────────────────────────────────

def vec_sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])

def vec_add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])

def vec_scale(v: Vec3, s: float) -> Vec3:
    return (v[0] * s, v[1] * s, v[2] * s)

def vec_dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]

def vec_cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )

def vec_normalize(v: Vec3) -> Vec3:
    l = math.sqrt(v[0] ** 2 + v[1] ** 2 + v[2] ** 2)
    if l < 1e-10:
        return (0.0, 0.0, 0.0)
    return (v[0] / l, v[1] / l, v[2] / l)

def vec_lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


# ─── Winding construction ─────────────────────────────────────────────────────

def base_winding_for_plane(plane: BSPPlane, size: float = MAX_COORD) -> Winding:
    """Create a large quad on the plane, clockwise when seen from the front."""
    n = plane.normal

    # Pick an up vector that is not parallel to the normal
    ax, ay, az = abs(n[0]), abs(n[1]), abs(n[2])
    if az >= ax and az >= ay:
        up = (1.0, 0.0, 0.0)
    else:
        up = (0.0, 0.0, 1.0)

    # Project up onto the plane
    up = vec_normalize(vec_sub(up, vec_scale(n, vec_dot(up, n))))
    right = vec_cross(up, n)

    org = vec_scale(n, plane.dist)
    up = vec_scale(up, size)
    right = vec_scale(right, size)

    return [
        vec_add(vec_sub(org, right), up),
        vec_add(vec_add(org, right), up),
        vec_sub(vec_add(org, right), up),
        vec_sub(vec_sub(org, right), up),
    ]


def clip_winding_by_plane(winding: Winding, plane: BSPPlane,
                          keep_front: bool = True) -> Winding:
    """Clip a convex polygon by a plane.

    If keep_front is True, keeps the side where n·p - dist >= 0 (front).
    If keep_front is False, keeps the back side.
    """
    if not winding:
        return []

    dists = [vec_dot(plane.normal, v) - plane.dist for v in winding]
    n = len(winding)
    result: Winding = []

    for i in range(n):
        j = (i + 1) % n
        di = dists[i]
        dj = dists[j]

        if keep_front:
            vi_inside = di >= -CLIP_EPSILON
        else:
            vi_inside = di <= CLIP_EPSILON

        if vi_inside:
            result.append(winding[i])

        # Edge crosses the plane: emit the intersection
        if (di > CLIP_EPSILON and dj < -CLIP_EPSILON) or \
           (di < -CLIP_EPSILON and dj > CLIP_EPSILON):
            t = di / (di - dj)
            t = max(0.0, min(1.0, t))
            result.append(vec_lerp(winding[i], winding[j], t))

    return result


def snap_vertex(v: Vec3) -> Vec3:
    """Snap a vertex the way VBSP does before storing it.

    Components within INTEGRAL_EPSILON of an integer become that integer,
    then everything is stored at float32 precision.
    """
    out = []
    for c in v:
        r = round(c)
        if abs(c - r) < INTEGRAL_EPSILON:
            c = float(r)
        out.append(float(np.float32(c)))
    return (out[0], out[1], out[2])


def winding_from_side(bsp: BSPData, brush: BSPBrush, side: BSPBrushSide) -> Winding:
    """Build the polygon one brush side contributes to its brush.

    Brush side planes face outward, so the kept part of each clip is the back
    side. Bevel sides only exist for collision and never clip. Returns fewer
    than three points for sides that end up degenerate.
    """
    winding = base_winding_for_plane(bsp.planes[side.planenum])

    for other in bsp.brush_sides(brush):
        if other is side or other.bevel:
            continue
        winding = clip_winding_by_plane(winding, bsp.planes[other.planenum],
                                        keep_front=False)
        if len(winding) < 3:
            break

    return [snap_vertex(v) for v in winding]
