"""
Errores del núcleo de emulación.

- CartridgeUnsupported: cabecera con mapper, tamaño de ROM o de RAM no soportado
- IllegalInstruction: la CPU decodifica un opcode inexistente en el SM83
- HostSinkFailure: el host (pantalla/audio) falló al recibir datos

Las violaciones de invariantes internas (índices fuera de rango en VRAM/OAM/WRAM)
no tienen clase propia: se manifiestan como IndexError/AssertionError.
"""

from __future__ import annotations


class EmulatorError(Exception):
    """Raíz de los errores del emulador."""


class CartridgeUnsupported(EmulatorError):
    """
    El cartucho usa un tipo de mapper, tamaño de ROM o tamaño de RAM no soportado.

    Args:
        field: Campo de cabecera ("cartridge_type", "rom_size" o "ram_size")
        code: Byte leído de la cabecera
    """

    def __init__(self, field: str, code: int) -> None:
        self.field = field
        self.code = code
        super().__init__(f"Cartucho no soportado: {field}=0x{code:02X}")


class IllegalInstruction(EmulatorError):
    """
    La CPU encontró un opcode no definido.

    Args:
        opcode: Opcode leído
        pc: Dirección donde se leyó el opcode
    """

    def __init__(self, opcode: int, pc: int) -> None:
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"Opcode ilegal 0x{opcode:02X} en PC=0x{pc:04X}")


class HostSinkFailure(EmulatorError):
    """Un sink del host (draw_line / enqueue_audio) lanzó una excepción."""

    def __init__(self, sink: str, message: str) -> None:
        self.sink = sink
        super().__init__(f"Fallo en {sink}: {message}")
