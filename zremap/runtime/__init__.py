"""Runtime switches."""
from .numba_config import DISABLE_ENV_VAR, KernelRegistry, numba_disabled_env

__all__ = ["DISABLE_ENV_VAR", "KernelRegistry", "numba_disabled_env"]
