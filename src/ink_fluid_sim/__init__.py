"""
Ink Fluid Sim.

Copyright (c) 2026 Ink Fluid Sim contributors
SPDX-License-Identifier: MIT OR Apache-2.0
"""
from .fluid.engine import FluidEngine, initialize, advance_frame, get_rendered_field
from .fluid.configs import SimParams, DisplayMode, ConfigurationError
from .fluid.brush_input import BrushInput, BrushState

__version__ = "1.0.0"
__license__ = "MIT"
__all__ = [
    "FluidEngine",
    "SimParams",
    "DisplayMode",
    "ConfigurationError",
    "BrushInput",
    "BrushState",
    "initialize",
    "advance_frame",
    "get_rendered_field",
]
