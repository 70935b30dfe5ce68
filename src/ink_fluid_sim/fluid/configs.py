from dataclasses import dataclass, field
from enum import Enum


class ConfigurationError(ValueError):
    """Raised when a grid or parameter set cannot produce a valid simulation."""


class DisplayMode(Enum):
    INK = "ink"
    VELOCITY = "velocity"
    IMAGE = "image"

    @classmethod
    def parse(cls, value) -> "DisplayMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown display mode {value!r} (expected one of: {names})") from None


@dataclass
class SimParams:
    """User-adjustable parameters for the fluid simulation."""

    # --- [NORMAL] Solver ---
    dt: float = field(default=0.6, metadata={"help": "Simulation timestep in grid units.", "category": "Normal", "min": 0.01, "max": 2.0})
    viscosity: float = field(default=1e-5, metadata={"help": "Kinematic viscosity used by the diffusion solve.", "category": "Normal", "min": 0.0, "max": 1.0})
    jacobi_iterations: int = field(default=10, metadata={"help": "Jacobi relaxation steps for diffusion and pressure.", "category": "Normal", "min": 1, "max": 200})
    enable_boundary: bool = field(default=True, metadata={"help": "Force zero velocity on the outermost cells (no-slip walls).", "category": "Normal"})
    display_mode: DisplayMode = field(default=DisplayMode.INK, metadata={"help": "Field shown by the compositor: ink, velocity or image.", "category": "Normal"})

    # --- [NORMAL] Brush ---
    brush_radius_fraction: float = field(default=0.1, metadata={"help": "Brush radius as a fraction of the grid width.", "category": "Normal", "min": 0.01, "max": 0.5})
    force_scale: float = field(default=0.6, metadata={"help": "Force applied per cell of pointer movement.", "category": "Normal", "min": 0.0, "max": 10.0})
    ink_amount: float = field(default=0.02, metadata={"help": "Ink injected at the brush centre per frame.", "category": "Normal", "min": 0.0, "max": 1.0})

    # --- [ADVANCED] Rendering ---
    displacement_scale: float = field(default=0.005, metadata={"help": "UV offset of the ink gradient used for refraction.", "category": "Advanced", "min": 0.0001, "max": 0.1})
    refraction_strength: float = field(default=0.8, metadata={"help": "How far the background is displaced by the ink gradient.", "category": "Advanced", "min": 0.0, "max": 5.0})
    simulation_quality: float = field(default=0.2, metadata={"help": "Grid cells per display pixel when sizing from a display.", "category": "Advanced", "min": 0.05, "max": 1.0})

    def __post_init__(self):
        self.display_mode = DisplayMode.parse(self.display_mode)

    def validate(self):
        """Rejects parameter sets the solver cannot run with."""
        if int(self.jacobi_iterations) <= 0:
            raise ConfigurationError(f"jacobi_iterations must be positive, got {self.jacobi_iterations}")
        if self.simulation_quality <= 0:
            raise ConfigurationError(f"simulation_quality must be positive, got {self.simulation_quality}")
        if self.brush_radius_fraction < 0:
            raise ConfigurationError(f"brush_radius_fraction must not be negative, got {self.brush_radius_fraction}")
        # dt/viscosity stability is left to the caller; see DESIGN.md
        return self


def validate_dimensions(width, height, what="grid"):
    if int(width) <= 0 or int(height) <= 0:
        raise ConfigurationError(f"{what} dimensions must be positive, got {width}x{height}")
    return int(width), int(height)
