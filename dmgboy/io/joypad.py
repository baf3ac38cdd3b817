"""
Joypad - Control de Botones y Direcciones

El Joypad de la Game Boy usa lógica "Active Low":
- 0 = Botón pulsado
- 1 = Botón soltado

El registro P1 (0xFF00):
- ESCRITURA: el juego selecciona qué grupo leer
  - Bit 4 = 0: Direcciones (Right, Left, Up, Down)
  - Bit 5 = 0: Acciones (A, B, Select, Start)
- LECTURA: bits 0-3 con el estado del grupo seleccionado
  - Bit 0: Right / A
  - Bit 1: Left / B
  - Bit 2: Up / Select
  - Bit 3: Down / Start
  Con ambos grupos seleccionados se combinan con AND; sin ninguno se lee 0x0F.

El host entrega dos máscaras donde un bit a 1 significa "pulsado"; el Joypad
guarda su inverso. Cuando un botón de un grupo seleccionado pasa de soltado a
pulsado se solicita la interrupción Joypad (Bit 4 de IF).

Fuente: Pan Docs - Joypad Input
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..memory.mmu import MMU

logger = logging.getLogger(__name__)

# Máscaras del selector en P1 (0 = grupo seleccionado)
P1_SELECT_DIRECTIONS = 0x10  # Bit 4
P1_SELECT_BUTTONS = 0x20     # Bit 5

# Bits de las máscaras de entrada del host (1 = pulsado)
DIR_RIGHT = 0x01
DIR_LEFT = 0x02
DIR_UP = 0x04
DIR_DOWN = 0x08
ACT_A = 0x01
ACT_B = 0x02
ACT_SELECT = 0x04
ACT_START = 0x08

JOYPAD_INTERRUPT_BIT = 0x10

# Nombre de botón -> (grupo, bit)
BUTTONS: dict[str, tuple[str, int]] = {
    "right": ("direction", DIR_RIGHT),
    "left": ("direction", DIR_LEFT),
    "up": ("direction", DIR_UP),
    "down": ("direction", DIR_DOWN),
    "a": ("action", ACT_A),
    "b": ("action", ACT_B),
    "select": ("action", ACT_SELECT),
    "start": ("action", ACT_START),
}


class Joypad:
    """
    Controlador del Joypad: dos nibbles Active Low y el selector de P1.
    """

    def __init__(self, mmu: MMU | None = None) -> None:
        # Nibbles Active Low: 0x0F = todo soltado
        self._direction: int = 0x0F
        self._action: int = 0x0F

        # Selector (bits 4-5 de P1). Al arrancar ambos grupos están seleccionados
        self._select_direction: bool = True
        self._select_action: bool = True

        self._mmu = mmu

        logger.debug("Joypad inicializado: todos los botones soltados")

    def set_mmu(self, mmu: MMU) -> None:
        self._mmu = mmu

    def write(self, value: int) -> None:
        """
        Escribe en P1: solo importan los bits 4-5 (selector).
        """
        self._select_direction = (value & P1_SELECT_DIRECTIONS) == 0
        self._select_action = (value & P1_SELECT_BUTTONS) == 0

    def read_nibble(self) -> int:
        """
        Devuelve los bits 0-3 de P1 según el selector actual.
        """
        if self._select_direction and self._select_action:
            return self._direction & self._action
        if self._select_direction:
            return self._direction
        if self._select_action:
            return self._action
        return 0x0F

    def read_select_bits(self) -> int:
        """Bits 4-5 de P1 tal y como los dejó el juego."""
        bits = 0
        if not self._select_direction:
            bits |= P1_SELECT_DIRECTIONS
        if not self._select_action:
            bits |= P1_SELECT_BUTTONS
        return bits

    def read(self) -> int:
        """
        Lee P1: 0xC0 | selector | nibble Active Low.
        """
        return 0xC0 | self.read_select_bits() | self.read_nibble()

    def set_input(self, direction_mask: int, action_mask: int) -> None:
        """
        Aplica el estado de entrada del host.

        Args:
            direction_mask: bits {right=0, left=1, up=2, down=3}, 1 = pulsado
            action_mask: bits {A=0, B=1, select=2, start=3}, 1 = pulsado
        """
        new_direction = ~direction_mask & 0x0F
        new_action = ~action_mask & 0x0F

        # Flancos de bajada (soltado -> pulsado) en grupos seleccionados
        pressed = 0
        if self._select_direction:
            pressed |= self._direction & ~new_direction
        if self._select_action:
            pressed |= self._action & ~new_action

        self._direction = new_direction
        self._action = new_action

        if pressed & 0x0F and self._mmu is not None:
            self._mmu.request_interrupt(JOYPAD_INTERRUPT_BIT)
            logger.debug("Joypad: Interrupción solicitada")

    def press(self, button: str) -> None:
        """
        Marca un botón como pulsado por nombre ("right", "a", "start", ...).
        """
        if button not in BUTTONS:
            logger.warning(f"Joypad: Botón desconocido '{button}', ignorando")
            return
        group, bit = BUTTONS[button]
        direction_mask = ~self._direction & 0x0F
        action_mask = ~self._action & 0x0F
        if group == "direction":
            direction_mask |= bit
        else:
            action_mask |= bit
        self.set_input(direction_mask, action_mask)

    def release(self, button: str) -> None:
        if button not in BUTTONS:
            logger.warning(f"Joypad: Botón desconocido '{button}', ignorando")
            return
        group, bit = BUTTONS[button]
        if group == "direction":
            self._direction |= bit
        else:
            self._action |= bit

    def get_state(self, button: str) -> bool:
        """True si el botón está pulsado."""
        if button not in BUTTONS:
            return False
        group, bit = BUTTONS[button]
        nibble = self._direction if group == "direction" else self._action
        return (nibble & bit) == 0
