"""
GPU (Graphics Processing Unit) - Unidad de Procesamiento Gráfico

Este módulo contiene los componentes relacionados con la pantalla de la Game Boy:
- PPU (Pixel Processing Unit): timing de modos y composición de cada scanline
- Sprite: entradas de OAM
- Renderer: ventana Pygame que presenta las líneas (se importa desde
  `dmgboy.gpu.renderer` solo cuando hay host gráfico)
"""

from .ppu import PPU, decode_tile_line
from .sprite import Sprite

__all__ = ["PPU", "Sprite", "decode_tile_line"]
