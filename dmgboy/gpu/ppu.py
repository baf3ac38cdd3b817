"""
PPU (Pixel Processing Unit) - Unidad de Procesamiento de Píxeles

La PPU de la Game Boy es responsable de:
1. Mantener el timing de la pantalla (modos, scanlines, V-Blank)
2. Generar cada línea visible (fondo, ventana y sprites)
3. Solicitar las interrupciones de video (V-Blank y LCD STAT)

Máquina de estados por línea (LCD encendido):
- Mode 2 (OAM Search): 80 T-Cycles -> Mode 3
- Mode 3 (Pixel Transfer): 168 T-Cycles -> Mode 0 (se dibuja la línea)
- Mode 0 (H-Blank): 208 T-Cycles -> Mode 2 si LY < 143, si no Mode 1
- Mode 1 (V-Blank): 456 T-Cycles por línea (144-153); tras la 153 vuelve a LY=0, Mode 2

Total por línea: 456 T-Cycles. Total por frame: 154 * 456 = 70224 T-Cycles.

La PPU es dueña de la VRAM (8KB) y de la OAM (160 bytes); la MMU enruta a
ellas los accesos de 0x8000-0x9FFF y 0xFE00-0xFE9F.

Fuente: Pan Docs - LCD Timing, LCDC, STAT, Tile Data, Tile Maps, OAM
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..config import LCD_WIDTH
from ..errors import HostSinkFailure
from ..host import NullFrameSink
from ..tick_counter import TickCounter
from .sprite import select_line_sprites

if TYPE_CHECKING:
    from ..host import FrameSink
    from ..memory.mmu import MMU

logger = logging.getLogger(__name__)

# Modos PPU
# Fuente: Pan Docs - LCD Status Register (STAT)
PPU_MODE_0_HBLANK = 0
PPU_MODE_1_VBLANK = 1
PPU_MODE_2_OAM_SEARCH = 2
PPU_MODE_3_PIXEL_TRANSFER = 3

# Duración de cada modo (T-Cycles)
MODE_2_CYCLES = 80
MODE_3_CYCLES = 168
MODE_0_CYCLES = 208
VBLANK_LINE_CYCLES = 456

MODE_DURATIONS = {
    PPU_MODE_0_HBLANK: MODE_0_CYCLES,
    PPU_MODE_1_VBLANK: VBLANK_LINE_CYCLES,
    PPU_MODE_2_OAM_SEARCH: MODE_2_CYCLES,
    PPU_MODE_3_PIXEL_TRANSFER: MODE_3_CYCLES,
}

LAST_VISIBLE_LINE = 143
TOTAL_LINES = 154

# Bits de LCDC
LCDC_LCD_ENABLE = 0x80
LCDC_WINDOW_MAP = 0x40
LCDC_WINDOW_ENABLE = 0x20
LCDC_TILE_DATA = 0x10
LCDC_BG_MAP = 0x08
LCDC_OBJ_SIZE = 0x04
LCDC_OBJ_ENABLE = 0x02
LCDC_BG_WINDOW_ENABLE = 0x01

# Bits de STAT configurables por software (3-6)
STAT_HBLANK_INT = 0x08
STAT_VBLANK_INT = 0x10
STAT_OAM_INT = 0x20
STAT_LYC_INT = 0x40
STAT_WRITABLE_MASK = 0x78

# Enable de STAT por modo
STAT_MODE_ENABLE = {
    PPU_MODE_0_HBLANK: STAT_HBLANK_INT,
    PPU_MODE_1_VBLANK: STAT_VBLANK_INT,
    PPU_MODE_2_OAM_SEARCH: STAT_OAM_INT,
}

# Bits de IF
VBLANK_INTERRUPT_BIT = 0x01
STAT_INTERRUPT_BIT = 0x02

VRAM_SIZE = 0x2000
OAM_SIZE = 0xA0

# Offsets dentro de la VRAM
TILE_MAP_0 = 0x1800  # 0x9800
TILE_MAP_1 = 0x1C00  # 0x9C00
SIGNED_TILE_BASE = 0x1000  # 0x9000

# Direcciones de los registros LCD
REG_LCDC = 0xFF40
REG_STAT = 0xFF41
REG_SCY = 0xFF42
REG_SCX = 0xFF43
REG_LY = 0xFF44
REG_LYC = 0xFF45
REG_DMA = 0xFF46
REG_BGP = 0xFF47
REG_OBP0 = 0xFF48
REG_OBP1 = 0xFF49
REG_WY = 0xFF4A
REG_WX = 0xFF4B


def decode_tile_line(byte1: int, byte2: int) -> list[int]:
    """
    Decodifica una línea de 8 píxeles de un tile en formato 2bpp.

    - byte1: bits bajos de cada píxel (bit 7 = píxel 0)
    - byte2: bits altos de cada píxel (bit 7 = píxel 0)

    color = (bit_alto << 1) | bit_bajo

    Returns:
        Lista de 8 índices (0-3) de izquierda a derecha
    """
    return [
        (((byte2 >> bit) & 0x01) << 1) | ((byte1 >> bit) & 0x01)
        for bit in range(7, -1, -1)
    ]


def apply_palette(palette: int, color_index: int) -> int:
    """Traduce un índice de color (0-3) con un registro de paleta (BGP/OBP0/OBP1)."""
    return (palette >> (color_index * 2)) & 0x03


class PPU:
    """
    PPU (Pixel Processing Unit) de la Game Boy.

    Avanza con los T-Cycles que le pasa el driver (`step`) y entrega cada
    línea visible al FrameSink en la transición Mode 3 -> Mode 0.
    """

    def __init__(self, mmu: MMU | None = None, frame_sink: FrameSink | None = None) -> None:
        """
        Args:
            mmu: MMU para solicitar interrupciones (V-Blank, STAT)
            frame_sink: Destino de las líneas dibujadas
        """
        self.mmu = mmu
        self.frame_sink: FrameSink = frame_sink if frame_sink is not None else NullFrameSink()

        self.vram = bytearray(VRAM_SIZE)
        self.oam = bytearray(OAM_SIZE)

        # Registros LCD
        self.lcdc: int = 0x00
        self.stat_enable: int = 0x00
        self.scy: int = 0
        self.scx: int = 0
        self.ly: int = 0
        self.lyc: int = 0
        self.bgp: int = 0x00
        self.obp0: int = 0x00
        self.obp1: int = 0x00
        self.wy: int = 0
        self.wx: int = 0
        self.dma_source: int = 0x00

        # Contador interno de línea de la ventana (WLY)
        self.window_line: int = 0

        # Con el LCD apagado el modo es 0
        self.mode: int = PPU_MODE_0_HBLANK
        self._mode_counter = TickCounter(MODE_2_CYCLES)

        # Buffers de la línea en curso: color final y índice crudo del fondo
        self._scanline = bytearray(LCD_WIDTH)
        self._bg_indices = bytearray(LCD_WIDTH)

    def set_mmu(self, mmu: MMU) -> None:
        self.mmu = mmu

    def set_frame_sink(self, frame_sink: FrameSink) -> None:
        self.frame_sink = frame_sink

    def is_lcd_enabled(self) -> bool:
        return (self.lcdc & LCDC_LCD_ENABLE) != 0

    # ========== Timing ==========

    def step(self, cycles: int) -> None:
        """
        Avanza la máquina de estados según los T-Cycles consumidos.

        Con el LCD apagado no avanza (LY se mantiene en 0).

        Raises:
            HostSinkFailure: Si el FrameSink falla al recibir una línea
        """
        if not self.lcdc & LCDC_LCD_ENABLE:
            return

        counter = self._mode_counter
        fired = counter.advance(cycles)
        while fired:
            self._next_mode()
            # El sobrante puede cubrir también el siguiente modo
            fired = counter.advance(0)

    def _next_mode(self) -> None:
        mode = self.mode
        if mode == PPU_MODE_2_OAM_SEARCH:
            self._set_mode(PPU_MODE_3_PIXEL_TRANSFER)
        elif mode == PPU_MODE_3_PIXEL_TRANSFER:
            self._set_mode(PPU_MODE_0_HBLANK)
            self._render_and_emit()
        elif mode == PPU_MODE_0_HBLANK:
            if self.ly < LAST_VISIBLE_LINE:
                self._set_ly(self.ly + 1)
                self._set_mode(PPU_MODE_2_OAM_SEARCH)
            else:
                self._set_ly(self.ly + 1)
                self._set_mode(PPU_MODE_1_VBLANK)
                self._request_interrupt(VBLANK_INTERRUPT_BIT)
        else:
            ly = self.ly + 1
            if ly >= TOTAL_LINES:
                self.window_line = 0
                self._set_ly(0)
                self._set_mode(PPU_MODE_2_OAM_SEARCH)
            else:
                self._set_ly(ly)

    def _set_mode(self, mode: int) -> None:
        self.mode = mode
        self._mode_counter.rearm(MODE_DURATIONS[mode])
        enable = STAT_MODE_ENABLE.get(mode, 0)
        if self.stat_enable & enable:
            self._request_interrupt(STAT_INTERRUPT_BIT)

    def _set_ly(self, ly: int) -> None:
        self.ly = ly
        if ly == self.lyc and self.stat_enable & STAT_LYC_INT:
            self._request_interrupt(STAT_INTERRUPT_BIT)

    def _request_interrupt(self, mask: int) -> None:
        if self.mmu is not None:
            self.mmu.request_interrupt(mask)

    def _render_and_emit(self) -> None:
        """Dibuja la línea LY, la entrega al host y avanza WLY si la ventana se vio."""
        self.render_scanline()
        try:
            self.frame_sink.draw_line(self.ly, self._scanline)
        except HostSinkFailure:
            raise
        except Exception as e:
            raise HostSinkFailure("draw_line", str(e)) from e

        lcdc = self.lcdc
        if (
            lcdc & LCDC_BG_WINDOW_ENABLE
            and lcdc & LCDC_WINDOW_ENABLE
            and self.wy <= self.ly
            and self.wx - 7 < LCD_WIDTH
        ):
            self.window_line += 1

    # ========== Registros ==========

    def get_stat(self) -> int:
        """
        STAT (0xFF41):
        - Bit 7: siempre 1
        - Bits 3-6: enables escritos por el software
        - Bit 2: LY == LYC
        - Bits 0-1: modo actual
        """
        coincidence = 0x04 if self.ly == self.lyc else 0x00
        return 0x80 | self.stat_enable | coincidence | self.mode

    def read_register(self, addr: int) -> int:
        if addr == REG_LCDC:
            return self.lcdc
        if addr == REG_STAT:
            return self.get_stat()
        if addr == REG_SCY:
            return self.scy
        if addr == REG_SCX:
            return self.scx
        if addr == REG_LY:
            return self.ly
        if addr == REG_LYC:
            return self.lyc
        if addr == REG_DMA:
            return self.dma_source
        if addr == REG_BGP:
            return self.bgp
        if addr == REG_OBP0:
            return self.obp0
        if addr == REG_OBP1:
            return self.obp1
        if addr == REG_WY:
            return self.wy
        if addr == REG_WX:
            return self.wx
        return 0xFF

    def write_register(self, addr: int, value: int) -> None:
        value &= 0xFF
        if addr == REG_LCDC:
            self._write_lcdc(value)
        elif addr == REG_STAT:
            # Los bits 0-2 son de solo lectura
            self.stat_enable = value & STAT_WRITABLE_MASK
        elif addr == REG_SCY:
            self.scy = value
        elif addr == REG_SCX:
            self.scx = value
        elif addr == REG_LY:
            logger.debug(f"PPU: escritura en LY ignorada (0x{value:02X})")
        elif addr == REG_LYC:
            self.lyc = value
        elif addr == REG_DMA:
            self.dma_source = value
        elif addr == REG_BGP:
            self.bgp = value
        elif addr == REG_OBP0:
            self.obp0 = value
        elif addr == REG_OBP1:
            self.obp1 = value
        elif addr == REG_WY:
            self.wy = value
        elif addr == REG_WX:
            self.wx = value

    def _write_lcdc(self, value: int) -> None:
        was_enabled = self.lcdc & LCDC_LCD_ENABLE
        self.lcdc = value
        enabled = value & LCDC_LCD_ENABLE

        if was_enabled and not enabled:
            # LCD apagado: LY=0, modo 0, WLY=0 y la línea vuelve a empezar
            self.ly = 0
            self.window_line = 0
            self.mode = PPU_MODE_0_HBLANK
            self._mode_counter.reset()
            logger.debug("PPU: LCD apagado")
        elif enabled and not was_enabled:
            self.window_line = 0
            self._mode_counter.reset()
            self._set_ly(0)
            self._set_mode(PPU_MODE_2_OAM_SEARCH)
            logger.debug("PPU: LCD encendido")

    # ========== Renderizado ==========

    def _tile_data_offset(self, tile_index: int) -> int:
        """Offset en VRAM del tile de fondo/ventana según LCDC bit 4."""
        if self.lcdc & LCDC_TILE_DATA:
            return tile_index * 16
        signed = tile_index - 256 if tile_index >= 0x80 else tile_index
        return SIGNED_TILE_BASE + signed * 16

    def _tile_row(self, tile_offset: int, row: int) -> list[int]:
        vram = self.vram
        addr = tile_offset + row * 2
        return decode_tile_line(vram[addr], vram[addr + 1])

    def render_scanline(self) -> bytearray:
        """
        Compone la línea LY en el buffer interno y lo devuelve.

        Orden: fondo, ventana y sprites. El buffer contiene colores ya
        traducidos por BGP/OBP0/OBP1 (0-3).
        """
        lcdc = self.lcdc
        if lcdc & LCDC_BG_WINDOW_ENABLE:
            self._render_background()
            if lcdc & LCDC_WINDOW_ENABLE and self.wy <= self.ly:
                self._render_window()
        else:
            for x in range(LCD_WIDTH):
                self._bg_indices[x] = 0
                self._scanline[x] = 0

        if lcdc & LCDC_OBJ_ENABLE:
            self._render_sprites()

        return self._scanline

    def _render_background(self) -> None:
        vram = self.vram
        scanline = self._scanline
        bg_indices = self._bg_indices
        bgp = self.bgp

        map_base = TILE_MAP_1 if self.lcdc & LCDC_BG_MAP else TILE_MAP_0
        y = (self.ly + self.scy) & 0xFF
        map_row = map_base + (y >> 3) * 32
        tile_y = y & 0x07

        pixels: list[int] = []
        for x in range(LCD_WIDTH):
            src_x = (x + self.scx) & 0xFF
            if x == 0 or (src_x & 0x07) == 0:
                tile_index = vram[map_row + (src_x >> 3)]
                pixels = self._tile_row(self._tile_data_offset(tile_index), tile_y)
            color = pixels[src_x & 0x07]
            bg_indices[x] = color
            scanline[x] = apply_palette(bgp, color)

    def _render_window(self) -> None:
        start_x = self.wx - 7
        if start_x >= LCD_WIDTH:
            return

        vram = self.vram
        scanline = self._scanline
        bg_indices = self._bg_indices
        bgp = self.bgp

        map_base = TILE_MAP_1 if self.lcdc & LCDC_WINDOW_MAP else TILE_MAP_0
        y = self.window_line & 0xFF
        map_row = map_base + (y >> 3) * 32
        tile_y = y & 0x07

        pixels: list[int] = []
        for x in range(max(0, start_x), LCD_WIDTH):
            win_x = x - start_x
            if not pixels or (win_x & 0x07) == 0:
                tile_index = vram[map_row + (win_x >> 3)]
                pixels = self._tile_row(self._tile_data_offset(tile_index), tile_y)
            color = pixels[win_x & 0x07]
            bg_indices[x] = color
            scanline[x] = apply_palette(bgp, color)

    def _render_sprites(self) -> None:
        """
        Dibuja hasta 10 sprites de la línea.

        - Color 0 transparente
        - Bit 7 de atributos: los colores 1-3 del fondo/ventana tapan al sprite
        - En modo 8x16 se ignora el bit 0 del tile
        """
        height = 16 if self.lcdc & LCDC_OBJ_SIZE else 8
        ly = self.ly
        scanline = self._scanline
        bg_indices = self._bg_indices

        sprites = select_line_sprites(self.oam, ly, height)
        for sprite in reversed(sprites):
            line = ly - (sprite.y - 16)
            if sprite.y_flip:
                line = height - 1 - line
            tile = sprite.tile & 0xFE if height == 16 else sprite.tile
            pixels = self._tile_row(tile * 16, line)
            palette = self.obp1 if sprite.uses_obp1 else self.obp0

            for col in range(8):
                screen_x = sprite.x - 8 + col
                if screen_x < 0 or screen_x >= LCD_WIDTH:
                    continue
                color = pixels[7 - col] if sprite.x_flip else pixels[col]
                if color == 0:
                    continue
                if sprite.bg_priority and bg_indices[screen_x] != 0:
                    continue
                scanline[screen_x] = apply_palette(palette, color)
