"""
containerrebuild - Rebuild proxy account containers on remote VPS hosts
"""

__version__ = "0.1.0"

from .core import ContainerReconciler
from .errors import RebuildError

__all__ = ["ContainerReconciler", "RebuildError"]
