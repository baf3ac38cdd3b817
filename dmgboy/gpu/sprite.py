"""
Sprites (OBJ) - Entradas de OAM

OAM (0xFE00-0xFE9F) contiene 40 entradas de 4 bytes:
- Byte 0: Y en pantalla + 16
- Byte 1: X en pantalla + 8
- Byte 2: Tile ID (siempre direccionamiento sin signo desde 0x8000)
- Byte 3: Atributos
  - Bit 7: Prioridad BG sobre OBJ (1 = los colores 1-3 del fondo tapan al sprite)
  - Bit 6: Y-Flip
  - Bit 5: X-Flip
  - Bit 4: Paleta (0 = OBP0, 1 = OBP1)

Fuente: Pan Docs - Object Attribute Memory (OAM)
"""

from __future__ import annotations

OAM_ENTRIES = 40
OAM_ENTRY_SIZE = 4
MAX_SPRITES_PER_LINE = 10

ATTR_BG_PRIORITY = 0x80
ATTR_Y_FLIP = 0x40
ATTR_X_FLIP = 0x20
ATTR_PALETTE = 0x10


class Sprite:
    """Vista decodificada de una entrada de OAM."""

    __slots__ = ("index", "y", "x", "tile", "attributes")

    def __init__(self, index: int, y: int, x: int, tile: int, attributes: int) -> None:
        self.index = index
        self.y = y
        self.x = x
        self.tile = tile
        self.attributes = attributes

    @classmethod
    def from_oam(cls, oam: bytes | bytearray, index: int) -> Sprite:
        base = index * OAM_ENTRY_SIZE
        return cls(index, oam[base], oam[base + 1], oam[base + 2], oam[base + 3])

    @property
    def bg_priority(self) -> bool:
        return bool(self.attributes & ATTR_BG_PRIORITY)

    @property
    def y_flip(self) -> bool:
        return bool(self.attributes & ATTR_Y_FLIP)

    @property
    def x_flip(self) -> bool:
        return bool(self.attributes & ATTR_X_FLIP)

    @property
    def uses_obp1(self) -> bool:
        return bool(self.attributes & ATTR_PALETTE)

    def covers_line(self, ly: int, height: int) -> bool:
        top = self.y - 16
        return top <= ly < top + height

    def __repr__(self) -> str:
        return (
            f"Sprite(#{self.index} Y={self.y} X={self.x} "
            f"tile=0x{self.tile:02X} attr=0x{self.attributes:02X})"
        )


def select_line_sprites(oam: bytes | bytearray, ly: int, height: int) -> list[Sprite]:
    """
    Devuelve los sprites visibles en la línea `ly`, ordenados de mayor a menor prioridad.

    Se toman los 10 primeros de OAM que cubren la línea y se ordenan por
    (X, índice). El renderizador los dibuja en orden inverso, así que el de
    menor X (y, en empate, menor índice) queda encima.
    """
    selected: list[Sprite] = []
    for index in range(OAM_ENTRIES):
        sprite = Sprite.from_oam(oam, index)
        if sprite.covers_line(ly, height):
            selected.append(sprite)
            if len(selected) == MAX_SPRITES_PER_LINE:
                break
    selected.sort(key=lambda s: (s.x, s.index))
    return selected
