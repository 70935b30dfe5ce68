"""Stable fluids solver, brush input and compositor."""
from .brush_input import BrushInput, BrushState
from .configs import ConfigurationError, DisplayMode, SimParams
from .engine import FluidEngine, advance_frame, get_rendered_field, initialize

__all__ = [
    "BrushInput",
    "BrushState",
    "ConfigurationError",
    "DisplayMode",
    "SimParams",
    "FluidEngine",
    "initialize",
    "advance_frame",
    "get_rendered_field",
]
