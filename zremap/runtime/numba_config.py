"""Numba switch and per-kernel fallback bookkeeping for the solver primitives."""
from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..warnings import NumericalWarning

DISABLE_ENV_VAR = "ZREMAP_DISABLE_NUMBA"

_YES = {"1", "true", "yes", "on"}
_NO = {"", "0", "false", "no", "off"}


def numba_disabled_env(env: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when ``ZREMAP_DISABLE_NUMBA`` selects the NumPy kernels.

    Unrecognised values keep Numba enabled and emit a :class:`NumericalWarning`.
    """
    env_map = os.environ if env is None else env
    raw = env_map.get(DISABLE_ENV_VAR)
    if raw is None:
        return False
    text = raw.strip().lower()
    if text in _YES:
        return True
    if text not in _NO:
        warnings.warn(
            f"Ignoring {DISABLE_ENV_VAR}={raw!r}; expected 1/0, true/false, yes/no or on/off",
            NumericalWarning,
        )
    return False


@dataclass
class KernelRegistry:
    """Which solver kernels run compiled and which fell back to NumPy.

    A kernel that raises at call time is recorded in ``fallbacks`` with the
    error it raised; only that kernel switches to the NumPy path.
    """

    disabled_env: bool = False
    fallbacks: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "KernelRegistry":
        return cls(disabled_env=numba_disabled_env(env))

    def use_numba(self, name: str) -> bool:
        return not self.disabled_env and name not in self.fallbacks

    def mark_failed(self, name: str, exc: BaseException) -> None:
        self.fallbacks[name] = repr(exc)
        warnings.warn(f"{name} numba kernel failed ({exc!r}); falling back to NumPy.", NumericalWarning)

    def status(self) -> dict[str, object]:
        """Payload recorded under ``kernels`` in run summaries."""
        if self.disabled_env:
            backend = "numpy"
        elif self.fallbacks:
            backend = "mixed"
        else:
            backend = "numba"
        return {
            "backend": backend,
            "disabled_env": self.disabled_env,
            "fallbacks": dict(sorted(self.fallbacks.items())),
        }


__all__ = [
    "DISABLE_ENV_VAR",
    "KernelRegistry",
    "numba_disabled_env",
]
