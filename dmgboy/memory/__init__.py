"""
Módulo de gestión de memoria (MMU - Memory Management Unit)

La MMU gestiona el espacio de direcciones de 16 bits de la Game Boy (0x0000 a 0xFFFF).
Incluye también los cartuchos (ROM-only y MBC1) y el parser de cabecera.
"""

from .cartridge import Cartridge, MBC1Cartridge, RomOnlyCartridge, load_cartridge
from .mmu import MMU

__all__ = ["MMU", "Cartridge", "MBC1Cartridge", "RomOnlyCartridge", "load_cartridge"]
