"""
Registros de la CPU SM83 (DMG)

La CPU de la Game Boy tiene:
- Registros de 8 bits: A, B, C, D, E, H, L, F
- Registros de 16 bits: PC (Program Counter), SP (Stack Pointer)
- Pares virtuales de 16 bits: AF, BC, DE, HL

El registro F (Flags):
- Bit 7 (Z): Zero flag - el resultado fue cero
- Bit 6 (N): Subtract flag - la última operación fue una resta
- Bit 5 (H): Half Carry flag - carry/borrow del bit 3 al 4
- Bit 4 (C): Carry flag - carry/borrow del bit 7

Peculiaridad hardware: los 4 bits bajos de F siempre son 0. Toda escritura en F
(incluido POP AF) pasa por la máscara 0xF0.

Estado post-arranque DMG (lo que deja la Boot ROM):
- A=0x11, F=0x80, B=0x00, C=0x00, DE=0xFF56, HL=0x0000, SP=0xFFFE, PC=0x0100

Fuente: Pan Docs - CPU Registers and Flags, Power Up Sequence
"""

from __future__ import annotations


# Máscaras para los flags
FLAG_Z = 0x80  # Zero flag (bit 7)
FLAG_N = 0x40  # Subtract flag (bit 6)
FLAG_H = 0x20  # Half Carry flag (bit 5)
FLAG_C = 0x10  # Carry flag (bit 4)

# Solo los bits altos de F son válidos
REGISTER_F_MASK = 0xF0


class Registers:
    """
    Registros de la CPU.

    Los registros de 8 bits son atributos simples (a, b, c, d, e, h, l) que el
    código de la CPU mantiene en 0x00-0xFF. F es una propiedad que aplica la
    máscara 0xF0 en cada escritura.
    """

    def __init__(self) -> None:
        self.a: int = 0
        self.b: int = 0
        self.c: int = 0
        self.d: int = 0
        self.e: int = 0
        self.h: int = 0
        self.l: int = 0
        self._f: int = 0

        self.pc: int = 0
        self.sp: int = 0

    @property
    def f(self) -> int:
        return self._f

    @f.setter
    def f(self, value: int) -> None:
        self._f = value & REGISTER_F_MASK

    def reset_post_boot(self) -> None:
        """Carga los valores que deja la Boot ROM DMG."""
        self.a = 0x11
        self.f = 0x80
        self.b = 0x00
        self.c = 0x00
        self.set_de(0xFF56)
        self.set_hl(0x0000)
        self.sp = 0xFFFE
        self.pc = 0x0100

    # ========== Pares virtuales de 16 bits ==========

    def get_af(self) -> int:
        return (self.a << 8) | self._f

    def set_af(self, value: int) -> None:
        """Establece AF; F conserva su máscara (bits bajos = 0)."""
        self.a = (value >> 8) & 0xFF
        self.f = value & 0xFF

    def get_bc(self) -> int:
        return (self.b << 8) | self.c

    def set_bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value & 0xFF

    def get_de(self) -> int:
        return (self.d << 8) | self.e

    def set_de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value & 0xFF

    def get_hl(self) -> int:
        return (self.h << 8) | self.l

    def set_hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value & 0xFF

    # ========== Helpers para Flags ==========

    def set_flags(self, z: bool, n: bool, h: bool, c: bool) -> None:
        """Escribe los cuatro flags de una vez."""
        self._f = (
            (FLAG_Z if z else 0)
            | (FLAG_N if n else 0)
            | (FLAG_H if h else 0)
            | (FLAG_C if c else 0)
        )

    def get_flag_z(self) -> bool:
        return (self._f & FLAG_Z) != 0

    def get_flag_n(self) -> bool:
        return (self._f & FLAG_N) != 0

    def get_flag_h(self) -> bool:
        return (self._f & FLAG_H) != 0

    def get_flag_c(self) -> bool:
        return (self._f & FLAG_C) != 0

    def __repr__(self) -> str:
        return (
            f"Registers(AF=0x{self.get_af():04X} BC=0x{self.get_bc():04X} "
            f"DE=0x{self.get_de():04X} HL=0x{self.get_hl():04X} "
            f"SP=0x{self.sp:04X} PC=0x{self.pc:04X})"
        )
