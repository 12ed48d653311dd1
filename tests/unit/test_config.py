from __future__ import annotations

import logging
import math
import warnings
from pathlib import Path

import pytest
from pydantic import ValidationError

from zremap import config_utils
from zremap.errors import ConfigurationError
from zremap.run import load_config
from zremap.schema import Config, Target
from zremap.warnings import ZRemapWarning


def _payload() -> dict:
    return {
        "source": {"path": "woa.nc", "field": "ptemp"},
        "target": {"grid": "grid.nc"},
    }


def test_config_defaults() -> None:
    cfg = Config(**_payload())
    assert cfg.source.unit_scale == 1.0
    assert cfg.source.missing_value is None
    assert cfg.remap.land_value == 0.0
    assert cfg.remap.jobs == 1
    assert cfg.io.outdir == Path("out")
    assert cfg.target.thickness_var == "h"


@pytest.mark.parametrize(
    "override",
    [
        {"remap": {"jobs": 0}},
        {"source": {"path": "woa.nc", "field": "ptemp", "unit_scale": 0.0}},
        {"source": {"path": "woa.nc", "field": ""}},
    ],
)
def test_config_rejects_invalid_values(override: dict) -> None:
    data = _payload()
    data.update(override)
    with pytest.raises(ValidationError):
        Config(**data)


def test_target_layers_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Target(grid="grid.nc", layers=[10.0, 0.0])
    with pytest.raises(ValidationError):
        Target(grid="grid.nc", thickness_var=None)
    with pytest.raises(ValidationError):
        Target(grid="grid.nc", lat_var="lat")
    assert Target(grid="grid.nc", thickness_var=None, layers=[5.0, 5.0]).layers == [5.0, 5.0]


def test_parse_override_value_follows_yaml_rules() -> None:
    assert config_utils.parse_override_value("true") is True
    assert config_utils.parse_override_value("null") is None
    assert config_utils.parse_override_value("4") == 4
    assert config_utils.parse_override_value("2.5e-3") == pytest.approx(2.5e-3)
    assert math.isinf(config_utils.parse_override_value("-.inf"))
    assert config_utils.parse_override_value("'abc'") == "abc"
    assert config_utils.parse_override_value("out/run1") == "out/run1"
    assert config_utils.parse_override_value(" [10, 20.5] ") == [10, 20.5]


def test_parse_override_value_rejects_broken_yaml() -> None:
    with pytest.raises(ConfigurationError, match="override value"):
        config_utils.parse_override_value("[1, 2")


def test_apply_overrides_dict_builds_nested_paths() -> None:
    payload = {"remap": {"jobs": 1}}
    config_utils.apply_overrides_dict(payload, ["remap.jobs=4", "io.outdir=results"])
    assert payload == {"remap": {"jobs": 4}, "io": {"outdir": "results"}}


@pytest.mark.parametrize("item", ["remap.jobs", "=3"])
def test_apply_overrides_dict_rejects_malformed(item: str) -> None:
    with pytest.raises(ConfigurationError):
        config_utils.apply_overrides_dict({}, [item])


def test_read_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "overrides.txt"
    path.write_text("# comment\nremap.jobs=2\n\nremap.zero_surface=true\n", encoding="utf-8")
    assert config_utils.read_overrides_file(path) == ["remap.jobs=2", "remap.zero_surface=true"]


def test_load_config_applies_overrides(tmp_path: Path) -> None:
    path = tmp_path / "cfg.yml"
    path.write_text(
        "source:\n  path: woa.nc\n  field: ptemp\n"
        "target:\n  grid: grid.nc\n"
        "remap:\n  zero_surface: false\n",
        encoding="utf-8",
    )
    cfg = load_config(
        path,
        overrides=["remap.zero_surface=true", "source.unit_scale=0.01", "target.layers=[10, 20, 40]"],
    )
    assert cfg.remap.zero_surface is True
    assert cfg.source.unit_scale == pytest.approx(0.01)
    assert cfg.target.layers == [10.0, 20.0, 40.0]


def test_quiet_logging_ignores_zremap_warnings() -> None:
    with warnings.catch_warnings():
        config_utils.configure_logging(quiet=True)
        assert logging.getLogger().level == logging.WARNING
        ignored = [f for f in warnings.filters if f[0] == "ignore" and f[2] is ZRemapWarning]
        assert ignored
    config_utils.configure_logging(quiet=False)
    assert logging.getLogger().level == logging.INFO
