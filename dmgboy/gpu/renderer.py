"""
Renderer - Ventana Pygame del host

Implementa el FrameSink: cada `draw_line(ly, scanline)` copia los 160 índices
de color en un framebuffer NumPy (144x160, uint8). `present()` traduce los
índices a RGB con operaciones vectorizadas, los vuelca con `pygame.surfarray`
y escala la superficie a la ventana.

`poll_input()` lee el teclado y devuelve las máscaras del Joypad:
- Direcciones: flechas
- A: Z o A
- B: X o S
- Select: Shift derecho
- Start: Return

Fuente: Pan Docs - LCD, Joypad Input
"""

from __future__ import annotations

import logging

import numpy as np
import pygame
import pygame.surfarray as surfarray

from ..config import DEFAULT_SCALE, LCD_HEIGHT, LCD_WIDTH
from ..io.joypad import (
    ACT_A,
    ACT_B,
    ACT_SELECT,
    ACT_START,
    DIR_DOWN,
    DIR_LEFT,
    DIR_RIGHT,
    DIR_UP,
)

logger = logging.getLogger(__name__)

# Color 0: el más claro, color 3: el más oscuro
PALETTE_GREYSCALE = np.array(
    [
        (255, 255, 255),  # 0: Blanco
        (170, 170, 170),  # 1: Gris claro
        (85, 85, 85),     # 2: Gris oscuro
        (0, 0, 0),        # 3: Negro
    ],
    dtype=np.uint8,
)

WINDOW_TITLE = "dmgboy"


def _direction_keys() -> dict[int, int]:
    return {
        pygame.K_RIGHT: DIR_RIGHT,
        pygame.K_LEFT: DIR_LEFT,
        pygame.K_UP: DIR_UP,
        pygame.K_DOWN: DIR_DOWN,
    }


def _action_keys() -> dict[int, int]:
    return {
        pygame.K_z: ACT_A,
        pygame.K_a: ACT_A,
        pygame.K_x: ACT_B,
        pygame.K_s: ACT_B,
        pygame.K_RSHIFT: ACT_SELECT,
        pygame.K_RETURN: ACT_START,
    }


class Renderer:
    """
    Motor de visualización usando Pygame y NumPy.
    """

    def __init__(self, scale: int = DEFAULT_SCALE, title: str = WINDOW_TITLE) -> None:
        """
        Args:
            scale: Factor de escala de la ventana (3 = 480x432)
            title: Título de la ventana
        """
        self.scale = scale
        self.window_width = LCD_WIDTH * scale
        self.window_height = LCD_HEIGHT * scale

        # Índices de color (0-3) de la pantalla completa, formato (y, x)
        self.framebuffer = np.zeros((LCD_HEIGHT, LCD_WIDTH), dtype=np.uint8)
        self.palette = PALETTE_GREYSCALE

        pygame.init()
        self.screen = pygame.display.set_mode((self.window_width, self.window_height))
        pygame.display.set_caption(title)

        # Superficie nativa 160x144; se escala en cada present()
        self.surface = pygame.Surface((LCD_WIDTH, LCD_HEIGHT))

        self._direction_keys = _direction_keys()
        self._action_keys = _action_keys()
        self._direction_mask = 0
        self._action_mask = 0

        logger.info(f"Renderer inicializado: {self.window_width}x{self.window_height} (scale={scale})")

    def draw_line(self, ly: int, scanline: bytes | bytearray) -> None:
        """FrameSink: copia la línea `ly` al framebuffer."""
        self.framebuffer[ly, :] = np.frombuffer(bytes(scanline), dtype=np.uint8)

    def present(self) -> None:
        """Traduce el framebuffer a RGB, lo escala y actualiza la ventana."""
        # (144, 160, 3) -> surfarray espera (ancho, alto, canales)
        rgb = self.palette[self.framebuffer & 0x03]
        surfarray.blit_array(self.surface, np.swapaxes(rgb, 0, 1))
        scaled = pygame.transform.scale(self.surface, self.screen.get_size())
        self.screen.blit(scaled, (0, 0))
        pygame.display.flip()

    def poll_input(self) -> tuple[int, int, bool]:
        """
        Procesa los eventos de Pygame.

        Returns:
            (direction_mask, action_mask, keep_running). `keep_running` es False
            cuando el usuario cierra la ventana o pulsa Escape.
        """
        keep_running = True
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                keep_running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    keep_running = False
                self._direction_mask |= self._direction_keys.get(event.key, 0)
                self._action_mask |= self._action_keys.get(event.key, 0)
            elif event.type == pygame.KEYUP:
                self._direction_mask &= ~self._direction_keys.get(event.key, 0) & 0x0F
                self._action_mask &= ~self._action_keys.get(event.key, 0) & 0x0F
        return self._direction_mask, self._action_mask, keep_running

    def quit(self) -> None:
        """Cierra Pygame limpiamente."""
        pygame.quit()
        logger.info("Renderer cerrado")
