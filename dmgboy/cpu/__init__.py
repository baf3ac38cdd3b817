"""
Módulo CPU - Implementación del procesador SM83
"""

from .core import CPU
from .registers import Registers

__all__ = ["CPU", "Registers"]
