"""Configuration schema for z-star tracer initialisation runs.

The Pydantic models mirror the layout of the YAML files read by
:func:`zremap.run.load_config`::

    source:
      path: woa_temp.nc
      field: ptemp
    target:
      grid: ocean_grid.nc
    remap:
      zero_surface: true
    io:
      outdir: out/ptemp
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .constants import LAND_VALUE_DEFAULT
from .errors import ConfigurationError


class Source(BaseModel):
    """Depth-space source file and field."""

    path: Path = Field(..., description="netCDF file holding the source field")
    field: str = Field(..., min_length=1, description="Name of the 3-D or 4-D source variable")
    unit_scale: float = Field(1.0, gt=0.0, description="Factor converting file depths into grid depth units")
    missing_value: Optional[float] = Field(
        None,
        description="Sentinel of the source data; the file's missing_value/_FillValue when omitted",
    )
    time_index: int = Field(0, ge=0, description="Record read from four dimensional fields")


class Target(BaseModel):
    """Target grid file and the variables read from it."""

    grid: Path = Field(..., description="netCDF file with bathymetry, mask and layer thicknesses")
    depth_var: str = Field("depth", description="Positive bathymetric depth, (y, x)")
    mask_var: Optional[str] = Field("mask", description="Ocean mask, (y, x); all ocean when absent")
    thickness_var: Optional[str] = Field("h", description="Layer thicknesses, (z, y, x)")
    lat_var: Optional[str] = Field(None, description="Latitude used in diagnostics")
    lon_var: Optional[str] = Field(None, description="Longitude used in diagnostics")
    layers: Optional[List[float]] = Field(
        None,
        description="Nominal layer thicknesses broadcast to every column instead of thickness_var",
    )

    @model_validator(mode="after")
    def _check_layers(self) -> "Target":
        if self.layers is not None:
            if not self.layers:
                raise ConfigurationError("target.layers must not be empty")
            if any(not value > 0.0 for value in self.layers):
                raise ConfigurationError("target.layers must be positive")
        elif self.thickness_var is None:
            raise ConfigurationError("target.thickness_var or target.layers must be provided")
        if (self.lat_var is None) != (self.lon_var is None):
            raise ConfigurationError("target.lat_var and target.lon_var must be given together")
        return self


class Remap(BaseModel):
    """Remapping options."""

    land_value: float = Field(LAND_VALUE_DEFAULT, description="Value assigned to land columns")
    zero_surface: bool = Field(
        False,
        description="Zero missing ocean surface values with a warning instead of failing",
    )
    jobs: int = Field(1, ge=1, description="Worker threads used over rows of the grid")


class IO(BaseModel):
    """Output locations."""

    outdir: Path = Path("out")
    output_name: str = Field("remapped.nc", description="netCDF file receiving the remapped field")
    layer_summary: bool = Field(True, description="Write per-layer statistics to layer_summary.csv")
    quiet: bool = Field(
        False,
        description="Suppress INFO logging and Python warnings for cleaner CLI output.",
    )


class Config(BaseModel):
    """Top-level configuration object."""

    source: Source
    target: Target
    remap: Remap = Remap()
    io: IO = IO()
