"""
Occluder Config — decompiler options that control func_occluder reconstruction.

Usage:
    parser = argparse.ArgumentParser()
    add_occluder_arguments(parser)
    config = OccluderConfig.from_args(parser.parse_args())
"""
from __future__ import annotations

import argparse
from dataclasses import dataclass
from enum import Enum


class OccMappingMode(Enum):
    """How occluder polygons are traced back to brushes."""
    MANUAL = 'manual'      # Geometric: compare every polygon against every side
    ORDERED = 'ordered'    # Assume VBSP emitted occluders in brush order

    def __str__(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_string(cls, name: str) -> OccMappingMode:
        """Parse a mode name case-insensitively ('geometric' is an alias of manual)."""
        key = name.strip().lower()
        if key == 'geometric':
            key = 'manual'
        for mode in cls:
            if mode.value == key:
                return mode
        raise ValueError(f"Unknown occluder mapping mode: {name!r} "
                         f"(expected one of: {', '.join(m.value for m in cls)})")


@dataclass
class OccluderConfig:
    write_occluders: bool = True
    occ_force_mapping: bool = False
    occ_mapping_mode: OccMappingMode = OccMappingMode.ORDERED
    verbose: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> OccluderConfig:
        """Build a config from arguments registered by add_occluder_arguments()."""
        mode_name = getattr(args, 'occ_mapping', None)
        return cls(
            write_occluders=not getattr(args, 'no_occluders', False),
            occ_force_mapping=mode_name is not None,
            occ_mapping_mode=(OccMappingMode.from_string(mode_name)
                              if mode_name is not None else OccMappingMode.ORDERED),
            verbose=getattr(args, 'verbose', False),
        )


def add_occluder_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the occluder options on a decompiler's argument parser."""
    group = parser.add_argument_group('occluders')
    group.add_argument('--no-occluders', action='store_true',
                       help='Do not reconstruct func_occluder brushes')
    group.add_argument('--occ-mapping', type=str.lower, default=None,
                       choices=[m.value for m in OccMappingMode] + ['geometric'],
                       help='Force an occluder mapping method instead of picking '
                            'one from the face counts')
    # The host tool may already define --verbose
    if not any('--verbose' in a.option_strings or '-v' in a.option_strings
               for a in parser._actions):
        group.add_argument('-v', '--verbose', action='store_true',
                           help='Print per-occluder mapping details')
