"""Helper utilities for normalising configuration inputs."""
from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigurationError
from .warnings import ZRemapWarning

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_VALUE_YAML = YAML(typ="safe")


def parse_override_value(raw: str) -> Any:
    """Parse the value of a ``path=value`` override with the YAML rules of config files.

    Flow sequences such as ``[10, 20, 40]`` give lists, as ``target.layers``
    expects.  Unparseable text raises :class:`ConfigurationError`.
    """

    try:
        return _VALUE_YAML.load(raw.strip())
    except YAMLError as exc:
        raise ConfigurationError(f"Cannot parse override value {raw!r}: {exc}") from exc


def apply_overrides_dict(payload: Dict[str, Any], overrides: Sequence[str]) -> Dict[str, Any]:
    """Apply dotted-path overrides such as ``remap.jobs=4`` to a mapping."""

    if not overrides:
        return payload
    for item in overrides:
        key, sep, value_str = item.partition("=")
        if not sep:
            raise ConfigurationError(f"Invalid override '{item}'; expected path=value")
        parts = [segment for segment in key.strip().split(".") if segment]
        if not parts:
            raise ConfigurationError(f"Invalid override '{item}'; empty path")
        target: Any = payload
        for segment in parts[:-1]:
            if not isinstance(target, dict):
                raise ConfigurationError(
                    f"Cannot traverse into non-mapping for override '{item}' at '{segment}'"
                )
            if segment not in target or target[segment] is None:
                target[segment] = {}
            target = target[segment]
        if not isinstance(target, dict):
            raise ConfigurationError(f"Cannot set override '{item}'; target is not a mapping")
        target[parts[-1]] = parse_override_value(value_str)
        logger.debug("override %s = %r", ".".join(parts), target[parts[-1]])
    return payload


def read_overrides_file(path: Path) -> List[str]:
    """Read ``PATH=VALUE`` lines, skipping blanks and ``#`` comments."""

    overrides: List[str] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for line in fh:
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            overrides.append(text)
    return overrides


def configure_logging(quiet: bool = False) -> None:
    """Log to stderr at INFO, or WARNING when ``quiet``, and route warnings through logging.

    Quiet runs also ignore zremap's own warning categories; warnings raised by
    other libraries still reach the ``py.warnings`` logger.
    """

    level = logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    if quiet:
        warnings.filterwarnings("ignore", category=ZRemapWarning)
    logging.captureWarnings(True)
