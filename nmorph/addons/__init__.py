"""
Add-ons package for detected shapes.

Provides helpers for:
- polygon geometry (containment, orientation, rotation)
- boolean mask algebra
- nucleus / cytoplasm components and their factories
- parallel alignment of components to a reference mask
"""

# ---- Geometry helpers ----
from .geometry import Point, contains, centroid, principal_angle, rotate

# ---- Mask algebra ----
from .mask import BooleanMask

# ---- Components ----
from .components import (
    CellularComponent,
    Nucleus,
    Cytoplasm,
    component_factory,
    nucleus_factory,
    cytoplasm_factory,
)

# ---- Alignment ----
from .aligner import (
    BooleanAligner,
    BooleanAlignmentTask,
    AlignmentOutcome,
    align_components,
)


__all__ = [
    # geometry
    "Point", "contains", "centroid", "principal_angle", "rotate",
    # masks
    "BooleanMask",
    # components
    "CellularComponent", "Nucleus", "Cytoplasm",
    "component_factory", "nucleus_factory", "cytoplasm_factory",
    # alignment
    "BooleanAligner", "BooleanAlignmentTask", "AlignmentOutcome", "align_components",
]
