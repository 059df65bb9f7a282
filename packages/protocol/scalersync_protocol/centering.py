"""Centering register values for the scaler's HCTR/VCTR commands."""

from __future__ import annotations

from dataclasses import dataclass

from .models import CenteringError, CenterValues, Resolution

# Register value that places the image at the left/top edge of the raster.
DEFAULT_ORIGIN = 10240


@dataclass(frozen=True)
class CenteringCalculator:
    """Map the free space around the input image to device centering units.

    ``origin`` and ``units_per_*`` come from the scaler's command reference and
    are configuration, not constants of the algorithm.
    """

    h_origin: int = DEFAULT_ORIGIN
    v_origin: int = DEFAULT_ORIGIN
    h_units_per_pixel: int = 1
    v_units_per_line: int = 1

    def __post_init__(self) -> None:
        if self.h_units_per_pixel <= 0 or self.v_units_per_line <= 0:
            raise ValueError("Centering scale factors must be positive")

    def compute(self, input: Resolution, output: Resolution) -> CenterValues:
        if output.h < input.h or output.v < input.v:
            raise CenteringError(f"Output {output} is smaller than input {input}")
        h = self.h_origin + (output.h // 2 - input.h // 2) * self.h_units_per_pixel
        v = self.v_origin + (output.v // 2 - input.v // 2) * self.v_units_per_line
        return CenterValues(h=h, v=v)
