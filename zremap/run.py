"""Command line driver for initialising a tracer on z-star layers.

Example::

    python -m zremap.run --config configs/ptemp.yml --override remap.jobs=4

The run reads the target grid, remaps the configured source field and writes
``<outdir>/<output_name>``, ``layer_summary.csv`` and ``summary.json``.
"""
from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ruamel.yaml import YAML

from . import config_utils
from .io import writer
from .io.grid import read_target_grid
from .numerics.solvers import kernel_status
from .remap import RemapStats, remap_from_source
from .schema import Config

logger = logging.getLogger(__name__)


def load_config(path: Path, overrides: Optional[Sequence[str]] = None) -> Config:
    """Load a YAML configuration file into a :class:`Config` instance."""

    yaml = YAML(typ="safe")
    source_path = Path(path).resolve()
    with source_path.open("r", encoding="utf-8") as fh:
        data = yaml.load(fh)
    if overrides:
        if not isinstance(data, dict):
            raise TypeError("Configuration overrides require the YAML root to be a mapping")
        data = config_utils.apply_overrides_dict(data, overrides)
    return Config(**data)


def run(cfg: Config) -> Dict[str, Any]:
    """Remap the configured source and write all outputs; return the summary."""

    start = time.perf_counter()
    target = read_target_grid(
        cfg.target.grid,
        depth_var=cfg.target.depth_var,
        mask_var=cfg.target.mask_var,
        thickness_var=cfg.target.thickness_var,
        lat_var=cfg.target.lat_var,
        lon_var=cfg.target.lon_var,
        layers=cfg.target.layers,
    )
    stats = RemapStats()
    result = remap_from_source(
        cfg.source.path,
        cfg.source.field,
        target.h,
        target.grid,
        unit_scale=cfg.source.unit_scale,
        missing_value=cfg.source.missing_value,
        land_value=cfg.remap.land_value,
        zero_surface=cfg.remap.zero_surface,
        time_index=cfg.source.time_index,
        jobs=cfg.remap.jobs,
        stats=stats,
    )

    outdir = Path(cfg.io.outdir)
    outputs: Dict[str, str] = {}
    if result.success:
        field_path = outdir / cfg.io.output_name
        writer.write_field_netcdf(
            field_path,
            cfg.source.field,
            result.field,
            target.h,
            target.grid,
            attrs={"source": str(cfg.source.path)},
        )
        outputs["field"] = str(field_path)
        if cfg.io.layer_summary:
            csv_path = outdir / "layer_summary.csv"
            writer.write_layer_summary(writer.layer_summary(result.field, target.h, target.grid), csv_path)
            outputs["layer_summary"] = str(csv_path)
    else:
        logger.error("Unable to initialise %s from %s", cfg.source.field, cfg.source.path)

    summary: Dict[str, Any] = {
        "source": str(cfg.source.path),
        "field": cfg.source.field,
        "success": bool(result.success),
        "n_layers": target.n_layers,
        "grid_shape": list(target.grid.shape),
        "jobs": cfg.remap.jobs,
        "stats": stats.as_dict(),
        "kernels": kernel_status(),
        "outputs": outputs,
        "elapsed_s": time.perf_counter() - start,
    }
    writer.write_summary(summary, outdir / "summary.json")
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point."""

    parser = argparse.ArgumentParser(description="Initialise a tracer on z-star layers from depth-space data")
    parser.add_argument("--config", type=Path, required=True, help="Path to YAML configuration")
    parser.add_argument(
        "--override",
        action="append",
        nargs="+",
        metavar="PATH=VALUE",
        help="Apply configuration overrides using dotted paths; e.g. --override remap.jobs=4",
    )
    parser.add_argument(
        "--overrides-file",
        action="append",
        type=Path,
        help="Load overrides from a file (one PATH=VALUE per line).",
    )
    parser.add_argument(
        "--quiet",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Suppress INFO logs and Python warnings (defaults to io.quiet).",
    )
    args = parser.parse_args(argv)

    override_list: List[str] = []
    if args.overrides_file:
        for override_path in args.overrides_file:
            override_list.extend(config_utils.read_overrides_file(override_path))
    if args.override:
        for group in args.override:
            override_list.extend(group)
    cfg = load_config(args.config, overrides=override_list)
    quiet = cfg.io.quiet if args.quiet is None else bool(args.quiet)
    config_utils.configure_logging(quiet)

    summary = run(cfg)
    return 0 if summary["success"] else 1


if __name__ == "__main__":  # pragma: no cover - standard CLI entrypoint
    raise SystemExit(main())
