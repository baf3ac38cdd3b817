"""
CPU (Central Processing Unit) - Procesador SM83

La CPU de la Game Boy ejecuta instrucciones en un ciclo continuo:
1. Interrupciones: si hay alguna pendiente (IE & IF) se atiende antes del fetch
2. Fetch: lee el byte apuntado por PC y avanza PC
3. Decode/Execute: busca el handler del opcode en la tabla de despacho

`step()` devuelve T-Cycles (4.194304 MHz). El coste de cada instrucción sale de
la tabla OPCODE_T_CYCLES; los saltos condicionales tomados usan
BRANCH_TAKEN_T_CYCLES y el prefijo 0xCB calcula su propio coste.

La decodificación aprovecha los patrones de codificación del SM83:
- Bits 5-3 y 2-0: índice de registro de 8 bits (B, C, D, E, H, L, (HL), A)
- Bits 5-4: índice de par de 16 bits (BC, DE, HL, SP) o (BC, DE, HL, AF) en PUSH/POP
- Bits 4-3: condición (NZ, Z, NC, C)

Simplificaciones:
- EI/DI actúan de inmediato (sin el retardo de una instrucción)
- STOP es un NOP de dos bytes
- Sin "halt bug": con IME=0 e interrupción pendiente, HALT simplemente termina

Fuente: Pan Docs - CPU Instruction Set, Interrupts, HALT
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from ..errors import IllegalInstruction
from .cycles import (
    BRANCH_TAKEN_T_CYCLES,
    HALT_T_CYCLES,
    INTERRUPT_T_CYCLES,
    OPCODE_T_CYCLES,
    cb_t_cycles,
)
from .disassembler import disassemble
from .registers import FLAG_C, FLAG_H, FLAG_N, FLAG_Z, Registers

if TYPE_CHECKING:
    from ..memory.mmu import MMU

logger = logging.getLogger(__name__)

# Vectores de interrupción por bit (prioridad: bit 0 la más alta)
INTERRUPT_VECTORS = (0x0040, 0x0048, 0x0050, 0x0058, 0x0060)
INTERRUPT_NAMES = ("V-Blank", "LCD STAT", "Timer", "Serial", "Joypad")

# Índices de registro de 8 bits en la codificación de opcodes
REG_NAMES = ("B", "C", "D", "E", "H", "L", "(HL)", "A")
REG_HL_PTR = 6

# Handler de opcode: devuelve True si un salto condicional se tomó
OpcodeHandler = Callable[[], "bool | None"]


class CPU:
    """
    CPU SM83 de la Game Boy.

    Mantiene los registros, IME, el flag HALT y los latches de interrupción
    IE (0xFFFF) e IF (0xFF0F). Toda la memoria se accede a través de la MMU.
    """

    def __init__(self, mmu: MMU) -> None:
        self.registers = Registers()
        self.mmu = mmu

        # IME (Interrupt Master Enable): DI lo apaga, EI lo enciende
        self.ime: bool = False

        # HALT: la CPU no ejecuta instrucciones hasta que haya una interrupción pendiente
        self.halted: bool = False

        # Latches de interrupción (bits 0-4: V-Blank, STAT, Timer, Serial, Joypad)
        self.interrupt_enable: int = 0x00
        self.interrupt_flag: int = 0x00

        self._r8_get, self._r8_set = self._build_register_accessors()
        self._opcode_table: list[OpcodeHandler | None] = [None] * 256
        self._cb_table: list[Callable[[], None]] = []
        self._init_opcode_table()
        self._init_cb_table()

    # ========== Accesos a registros por índice ==========

    def _build_register_accessors(
        self,
    ) -> tuple[list[Callable[[], int]], list[Callable[[int], None]]]:
        """
        Construye getters/setters indexados por el campo de registro del opcode.

        El índice 6 corresponde a (HL): lectura/escritura en memoria.
        """
        regs = self.registers
        mmu = self.mmu

        def make_get(name: str) -> Callable[[], int]:
            return lambda: getattr(regs, name)

        def make_set(name: str) -> Callable[[int], None]:
            def setter(value: int) -> None:
                setattr(regs, name, value & 0xFF)
            return setter

        getters: list[Callable[[], int]] = []
        setters: list[Callable[[int], None]] = []
        for name in ("b", "c", "d", "e", "h", "l", None, "a"):
            if name is None:
                getters.append(lambda: mmu.read_byte(regs.get_hl()))
                setters.append(lambda value: mmu.write_byte(regs.get_hl(), value & 0xFF))
            else:
                getters.append(make_get(name))
                setters.append(make_set(name))
        return getters, setters

    def _get_r16(self, index: int) -> int:
        """Pares del grupo 1 (BC, DE, HL, SP)."""
        regs = self.registers
        if index == 0:
            return regs.get_bc()
        if index == 1:
            return regs.get_de()
        if index == 2:
            return regs.get_hl()
        return regs.sp

    def _set_r16(self, index: int, value: int) -> None:
        regs = self.registers
        value &= 0xFFFF
        if index == 0:
            regs.set_bc(value)
        elif index == 1:
            regs.set_de(value)
        elif index == 2:
            regs.set_hl(value)
        else:
            regs.sp = value

    def _check_condition(self, cc: int) -> bool:
        """Condiciones codificadas en bits 4-3: NZ, Z, NC, C."""
        f = self.registers.f
        if cc == 0:
            return not f & FLAG_Z
        if cc == 1:
            return bool(f & FLAG_Z)
        if cc == 2:
            return not f & FLAG_C
        return bool(f & FLAG_C)

    # ========== Fetch ==========

    def fetch_byte(self) -> int:
        """Lee el byte en PC y avanza PC."""
        regs = self.registers
        value = self.mmu.read_byte(regs.pc)
        regs.pc = (regs.pc + 1) & 0xFFFF
        return value

    def fetch_word(self) -> int:
        """Lee la palabra Little-Endian en PC y avanza PC en 2."""
        lsb = self.fetch_byte()
        msb = self.fetch_byte()
        return (msb << 8) | lsb

    def _read_signed_byte(self) -> int:
        """Lee un inmediato de 8 bits en complemento a 2 (-128..127)."""
        value = self.fetch_byte()
        return value - 256 if value >= 0x80 else value

    # ========== Pila ==========

    def _push_word(self, value: int) -> None:
        """SP se pre-decrementa en 2 y se escribe Little-Endian."""
        regs = self.registers
        regs.sp = (regs.sp - 2) & 0xFFFF
        self.mmu.write_word(regs.sp, value & 0xFFFF)

    def _pop_word(self) -> int:
        """Se lee Little-Endian y SP se post-incrementa en 2."""
        regs = self.registers
        value = self.mmu.read_word(regs.sp)
        regs.sp = (regs.sp + 2) & 0xFFFF
        return value

    # ========== Interrupciones ==========

    def request_interrupt(self, mask: int) -> None:
        """Activa bits en IF (lo usan PPU, Timer y Joypad a través de la MMU)."""
        self.interrupt_flag = (self.interrupt_flag | mask) & 0x1F

    def handle_interrupts(self) -> int:
        """
        Atiende la interrupción pendiente de mayor prioridad.

        - Si hay alguna pendiente (IE & IF), la CPU sale de HALT aunque IME sea False.
        - Si IME está activo: PUSH PC, PC = vector, se limpia el bit de IF y IME.

        Returns:
            T-Cycles consumidos (20 si se despachó una interrupción, 0 si no)
        """
        pending = self.interrupt_enable & self.interrupt_flag & 0x1F
        if not pending:
            return 0

        if self.halted:
            self.halted = False
            logger.debug("HALT: Despertando por interrupción pendiente")

        if not self.ime:
            return 0

        # El bit de menor peso tiene mayor prioridad
        bit = (pending & -pending).bit_length() - 1
        vector = INTERRUPT_VECTORS[bit]

        self.ime = False
        self.interrupt_flag &= ~(1 << bit) & 0x1F
        self._push_word(self.registers.pc)
        self.registers.pc = vector

        logger.debug(f"INTERRUPT: {INTERRUPT_NAMES[bit]} -> 0x{vector:04X}")
        return INTERRUPT_T_CYCLES

    # ========== Ciclo de instrucción ==========

    def step(self) -> int:
        """
        Ejecuta un paso de la CPU.

        1. Atender interrupciones. Si se despacha una, el paso termina aquí
           (PC queda en el vector).
        2. Si la CPU sigue en HALT, consumir 4 T-Cycles.
        3. Fetch, decode y execute de una instrucción.

        Returns:
            T-Cycles consumidos

        Raises:
            IllegalInstruction: Si el opcode no existe en el SM83
        """
        interrupt_cycles = self.handle_interrupts()
        if interrupt_cycles:
            return interrupt_cycles

        if self.halted:
            return HALT_T_CYCLES

        pc = self.registers.pc
        opcode = self.fetch_byte()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"PC=0x{pc:04X} {disassemble(self.mmu.read_byte, pc)[0]:<16} {self.registers!r}")

        if opcode == 0xCB:
            return self._execute_cb()

        handler = self._opcode_table[opcode]
        if handler is None:
            raise IllegalInstruction(opcode, pc)

        if handler():
            return BRANCH_TAKEN_T_CYCLES[opcode]
        return OPCODE_T_CYCLES[opcode]

    def _execute_cb(self) -> int:
        cb_opcode = self.fetch_byte()
        self._cb_table[cb_opcode]()
        return cb_t_cycles(cb_opcode)

    # ========== ALU de 8 bits ==========

    def _add(self, value: int) -> None:
        a = self.registers.a
        result = a + value
        self.registers.a = result & 0xFF
        self.registers.set_flags(
            (result & 0xFF) == 0, False, ((a & 0x0F) + (value & 0x0F)) > 0x0F, result > 0xFF
        )

    def _adc(self, value: int) -> None:
        a = self.registers.a
        carry = 1 if self.registers.f & FLAG_C else 0
        result = a + value + carry
        self.registers.a = result & 0xFF
        self.registers.set_flags(
            (result & 0xFF) == 0,
            False,
            ((a & 0x0F) + (value & 0x0F) + carry) > 0x0F,
            result > 0xFF,
        )

    def _sub(self, value: int) -> None:
        a = self.registers.a
        result = a - value
        self.registers.a = result & 0xFF
        self.registers.set_flags((result & 0xFF) == 0, True, (a & 0x0F) < (value & 0x0F), result < 0)

    def _sbc(self, value: int) -> None:
        a = self.registers.a
        carry = 1 if self.registers.f & FLAG_C else 0
        result = a - value - carry
        self.registers.a = result & 0xFF
        self.registers.set_flags(
            (result & 0xFF) == 0,
            True,
            ((a & 0x0F) - (value & 0x0F) - carry) < 0,
            result < 0,
        )

    def _and(self, value: int) -> None:
        result = self.registers.a & value
        self.registers.a = result
        self.registers.set_flags(result == 0, False, True, False)

    def _xor(self, value: int) -> None:
        result = self.registers.a ^ value
        self.registers.a = result
        self.registers.set_flags(result == 0, False, False, False)

    def _or(self, value: int) -> None:
        result = self.registers.a | value
        self.registers.a = result
        self.registers.set_flags(result == 0, False, False, False)

    def _cp(self, value: int) -> None:
        """Como SUB pero descarta el resultado."""
        a = self.registers.a
        result = a - value
        self.registers.set_flags((result & 0xFF) == 0, True, (a & 0x0F) < (value & 0x0F), result < 0)

    def _inc_n(self, value: int) -> int:
        """INC de 8 bits. C se conserva."""
        result = (value + 1) & 0xFF
        regs = self.registers
        regs.f = (regs.f & FLAG_C) | (FLAG_Z if result == 0 else 0) | (FLAG_H if (value & 0x0F) == 0x0F else 0)
        return result

    def _dec_n(self, value: int) -> int:
        """DEC de 8 bits. C se conserva."""
        result = (value - 1) & 0xFF
        regs = self.registers
        regs.f = (
            (regs.f & FLAG_C)
            | (FLAG_Z if result == 0 else 0)
            | FLAG_N
            | (FLAG_H if (value & 0x0F) == 0x00 else 0)
        )
        return result

    # ========== ALU de 16 bits ==========

    def _add_hl_16bit(self, value: int) -> None:
        """
        ADD HL, rr: Z se conserva, N=0, H por carry del bit 11, C por carry del bit 15.
        """
        regs = self.registers
        hl = regs.get_hl()
        result = hl + value
        regs.set_hl(result & 0xFFFF)
        regs.f = (
            (regs.f & FLAG_Z)
            | (FLAG_H if ((hl & 0x0FFF) + (value & 0x0FFF)) > 0x0FFF else 0)
            | (FLAG_C if result > 0xFFFF else 0)
        )

    def _add_sp_offset(self, offset: int) -> int:
        """
        SP + i8 con los flags de ADD SP,e / LD HL,SP+e.

        Los flags salen de la suma sin signo del byte bajo de SP con el inmediato
        (Z=0, N=0, H por carry del bit 3, C por carry del bit 7); el resultado
        es la suma de 16 bits con signo.
        """
        sp = self.registers.sp
        unsigned = offset & 0xFF
        self.registers.set_flags(
            False,
            False,
            ((sp & 0x0F) + (unsigned & 0x0F)) > 0x0F,
            ((sp & 0xFF) + unsigned) > 0xFF,
        )
        return (sp + offset) & 0xFFFF

    def _op_daa(self) -> None:
        """
        DAA: ajusta A a BCD tras una suma o resta, según N, H y C.
        """
        regs = self.registers
        a = regs.a
        carry = regs.get_flag_c()
        if not regs.get_flag_n():
            if carry or a > 0x99:
                a += 0x60
                carry = True
            if regs.get_flag_h() or (a & 0x0F) > 0x09:
                a += 0x06
        else:
            if carry:
                a -= 0x60
            if regs.get_flag_h():
                a -= 0x06
        a &= 0xFF
        regs.a = a
        regs.f = (FLAG_Z if a == 0 else 0) | (regs.f & FLAG_N) | (FLAG_C if carry else 0)

    # ========== Tabla de despacho ==========

    def _init_opcode_table(self) -> None:
        """
        Rellena la tabla de 256 entradas agrupando opcodes por su codificación.
        Las entradas de opcodes ilegales quedan a None.
        """
        table = self._opcode_table
        regs = self.registers
        mmu = self.mmu
        r8_get = self._r8_get
        r8_set = self._r8_set

        # --- Misceláneos / control ---
        table[0x00] = lambda: None  # NOP

        def op_stop() -> None:
            # STOP consume un byte extra y se comporta como NOP
            self.fetch_byte()

        table[0x10] = op_stop

        def op_halt() -> None:
            self.halted = True

        table[0x76] = op_halt

        def op_di() -> None:
            self.ime = False

        def op_ei() -> None:
            self.ime = True

        table[0xF3] = op_di
        table[0xFB] = op_ei

        # --- LD rr, d16 / INC rr / DEC rr / ADD HL, rr ---
        for rr in range(4):
            def make_ld_rr_d16(index: int) -> OpcodeHandler:
                def handler() -> None:
                    self._set_r16(index, self.fetch_word())
                return handler

            def make_inc_rr(index: int) -> OpcodeHandler:
                def handler() -> None:
                    self._set_r16(index, self._get_r16(index) + 1)
                return handler

            def make_dec_rr(index: int) -> OpcodeHandler:
                def handler() -> None:
                    self._set_r16(index, self._get_r16(index) - 1)
                return handler

            def make_add_hl_rr(index: int) -> OpcodeHandler:
                def handler() -> None:
                    self._add_hl_16bit(self._get_r16(index))
                return handler

            table[0x01 | (rr << 4)] = make_ld_rr_d16(rr)
            table[0x03 | (rr << 4)] = make_inc_rr(rr)
            table[0x0B | (rr << 4)] = make_dec_rr(rr)
            table[0x09 | (rr << 4)] = make_add_hl_rr(rr)

        # --- Cargas indirectas con A: (BC), (DE), (HL+), (HL-) ---
        def indirect_addr(index: int) -> int:
            if index == 0:
                return regs.get_bc()
            if index == 1:
                return regs.get_de()
            hl = regs.get_hl()
            regs.set_hl((hl + 1) & 0xFFFF if index == 2 else (hl - 1) & 0xFFFF)
            return hl

        for index in range(4):
            def make_store(idx: int) -> OpcodeHandler:
                def handler() -> None:
                    mmu.write_byte(indirect_addr(idx), regs.a)
                return handler

            def make_load(idx: int) -> OpcodeHandler:
                def handler() -> None:
                    regs.a = mmu.read_byte(indirect_addr(idx))
                return handler

            table[0x02 | (index << 4)] = make_store(index)
            table[0x0A | (index << 4)] = make_load(index)

        # --- INC r / DEC r / LD r, d8 ---
        for r in range(8):
            def make_inc(idx: int) -> OpcodeHandler:
                def handler() -> None:
                    r8_set[idx](self._inc_n(r8_get[idx]()))
                return handler

            def make_dec(idx: int) -> OpcodeHandler:
                def handler() -> None:
                    r8_set[idx](self._dec_n(r8_get[idx]()))
                return handler

            def make_ld_d8(idx: int) -> OpcodeHandler:
                def handler() -> None:
                    r8_set[idx](self.fetch_byte())
                return handler

            table[0x04 | (r << 3)] = make_inc(r)
            table[0x05 | (r << 3)] = make_dec(r)
            table[0x06 | (r << 3)] = make_ld_d8(r)

        # --- Rotaciones rápidas del acumulador (Z=0, N=0, H=0) ---
        def op_rlca() -> None:
            carry = regs.a >> 7
            regs.a = ((regs.a << 1) | carry) & 0xFF
            regs.f = FLAG_C if carry else 0

        def op_rrca() -> None:
            carry = regs.a & 0x01
            regs.a = (regs.a >> 1) | (carry << 7)
            regs.f = FLAG_C if carry else 0

        def op_rla() -> None:
            old_carry = 1 if regs.f & FLAG_C else 0
            carry = regs.a >> 7
            regs.a = ((regs.a << 1) | old_carry) & 0xFF
            regs.f = FLAG_C if carry else 0

        def op_rra() -> None:
            old_carry = 1 if regs.f & FLAG_C else 0
            carry = regs.a & 0x01
            regs.a = (regs.a >> 1) | (old_carry << 7)
            regs.f = FLAG_C if carry else 0

        table[0x07] = op_rlca
        table[0x0F] = op_rrca
        table[0x17] = op_rla
        table[0x1F] = op_rra

        # --- Misceláneos de A y flags ---
        def op_cpl() -> None:
            regs.a = ~regs.a & 0xFF
            regs.f = regs.f | FLAG_N | FLAG_H

        def op_scf() -> None:
            regs.f = (regs.f & FLAG_Z) | FLAG_C

        def op_ccf() -> None:
            regs.f = (regs.f & FLAG_Z) | (0 if regs.f & FLAG_C else FLAG_C)

        table[0x27] = self._op_daa
        table[0x2F] = op_cpl
        table[0x37] = op_scf
        table[0x3F] = op_ccf

        # --- LD (a16), SP ---
        def op_ld_nn_sp() -> None:
            mmu.write_word(self.fetch_word(), regs.sp)

        table[0x08] = op_ld_nn_sp

        # --- Saltos relativos ---
        def op_jr() -> None:
            offset = self._read_signed_byte()
            regs.pc = (regs.pc + offset) & 0xFFFF

        table[0x18] = op_jr

        for cc in range(4):
            def make_jr_cc(cond: int) -> OpcodeHandler:
                def handler() -> bool:
                    offset = self._read_signed_byte()
                    if self._check_condition(cond):
                        regs.pc = (regs.pc + offset) & 0xFFFF
                        return True
                    return False
                return handler

            table[0x20 | (cc << 3)] = make_jr_cc(cc)

        # --- LD r, r' (0x40-0x7F, salvo 0x76 HALT) ---
        for dst in range(8):
            for src in range(8):
                opcode = 0x40 | (dst << 3) | src
                if opcode == 0x76:
                    continue

                def make_ld_r_r(d: int, s: int) -> OpcodeHandler:
                    getter = r8_get[s]
                    setter = r8_set[d]

                    def handler() -> None:
                        setter(getter())
                    return handler

                table[opcode] = make_ld_r_r(dst, src)

        # --- Bloque ALU (0x80-0xBF) y ALU con inmediato (0xC6, 0xCE, ...) ---
        operations = (self._add, self._adc, self._sub, self._sbc, self._and, self._xor, self._or, self._cp)
        for op_idx, op_func in enumerate(operations):
            for r in range(8):
                def make_alu(func: Callable[[int], None], idx: int) -> OpcodeHandler:
                    getter = r8_get[idx]

                    def handler() -> None:
                        func(getter())
                    return handler

                table[0x80 | (op_idx << 3) | r] = make_alu(op_func, r)

            def make_alu_d8(func: Callable[[int], None]) -> OpcodeHandler:
                def handler() -> None:
                    func(self.fetch_byte())
                return handler

            table[0xC6 | (op_idx << 3)] = make_alu_d8(op_func)

        # --- RET / RETI / RET cc ---
        def op_ret() -> None:
            regs.pc = self._pop_word()

        def op_reti() -> None:
            regs.pc = self._pop_word()
            self.ime = True

        table[0xC9] = op_ret
        table[0xD9] = op_reti

        for cc in range(4):
            def make_ret_cc(cond: int) -> OpcodeHandler:
                def handler() -> bool:
                    if self._check_condition(cond):
                        regs.pc = self._pop_word()
                        return True
                    return False
                return handler

            table[0xC0 | (cc << 3)] = make_ret_cc(cc)

        # --- JP ---
        def op_jp() -> None:
            regs.pc = self.fetch_word()

        def op_jp_hl() -> None:
            regs.pc = regs.get_hl()

        table[0xC3] = op_jp
        table[0xE9] = op_jp_hl

        for cc in range(4):
            def make_jp_cc(cond: int) -> OpcodeHandler:
                def handler() -> bool:
                    target = self.fetch_word()
                    if self._check_condition(cond):
                        regs.pc = target
                        return True
                    return False
                return handler

            table[0xC2 | (cc << 3)] = make_jp_cc(cc)

        # --- CALL ---
        def op_call() -> None:
            target = self.fetch_word()
            self._push_word(regs.pc)
            regs.pc = target

        table[0xCD] = op_call

        for cc in range(4):
            def make_call_cc(cond: int) -> OpcodeHandler:
                def handler() -> bool:
                    target = self.fetch_word()
                    if self._check_condition(cond):
                        self._push_word(regs.pc)
                        regs.pc = target
                        return True
                    return False
                return handler

            table[0xC4 | (cc << 3)] = make_call_cc(cc)

        # --- PUSH / POP (grupo 2: BC, DE, HL, AF) ---
        for rr in range(3):
            def make_push(index: int) -> OpcodeHandler:
                def handler() -> None:
                    self._push_word(self._get_r16(index))
                return handler

            def make_pop(index: int) -> OpcodeHandler:
                def handler() -> None:
                    self._set_r16(index, self._pop_word())
                return handler

            table[0xC5 | (rr << 4)] = make_push(rr)
            table[0xC1 | (rr << 4)] = make_pop(rr)

        def op_push_af() -> None:
            self._push_word(regs.get_af())

        def op_pop_af() -> None:
            regs.set_af(self._pop_word())

        table[0xF5] = op_push_af
        table[0xF1] = op_pop_af

        # --- RST n ---
        for n in range(8):
            def make_rst(vector: int) -> OpcodeHandler:
                def handler() -> None:
                    self._push_word(regs.pc)
                    regs.pc = vector
                return handler

            table[0xC7 | (n << 3)] = make_rst(n << 3)

        # --- I/O de página alta ---
        def op_ldh_n_a() -> None:
            mmu.write_byte(0xFF00 | self.fetch_byte(), regs.a)

        def op_ldh_a_n() -> None:
            regs.a = mmu.read_byte(0xFF00 | self.fetch_byte())

        def op_ld_c_a() -> None:
            mmu.write_byte(0xFF00 | regs.c, regs.a)

        def op_ld_a_c() -> None:
            regs.a = mmu.read_byte(0xFF00 | regs.c)

        def op_ld_nn_a() -> None:
            mmu.write_byte(self.fetch_word(), regs.a)

        def op_ld_a_nn() -> None:
            regs.a = mmu.read_byte(self.fetch_word())

        table[0xE0] = op_ldh_n_a
        table[0xF0] = op_ldh_a_n
        table[0xE2] = op_ld_c_a
        table[0xF2] = op_ld_a_c
        table[0xEA] = op_ld_nn_a
        table[0xFA] = op_ld_a_nn

        # --- Aritmética con SP ---
        def op_add_sp_e() -> None:
            regs.sp = self._add_sp_offset(self._read_signed_byte())

        def op_ld_hl_sp_e() -> None:
            regs.set_hl(self._add_sp_offset(self._read_signed_byte()))

        def op_ld_sp_hl() -> None:
            regs.sp = regs.get_hl()

        table[0xE8] = op_add_sp_e
        table[0xF8] = op_ld_hl_sp_e
        table[0xF9] = op_ld_sp_hl

    # ========== Prefijo CB ==========

    def _cb_rlc(self, value: int) -> tuple[int, int]:
        carry = value >> 7
        return ((value << 1) | carry) & 0xFF, carry

    def _cb_rrc(self, value: int) -> tuple[int, int]:
        carry = value & 0x01
        return (value >> 1) | (carry << 7), carry

    def _cb_rl(self, value: int) -> tuple[int, int]:
        old_carry = 1 if self.registers.f & FLAG_C else 0
        return ((value << 1) | old_carry) & 0xFF, value >> 7

    def _cb_rr(self, value: int) -> tuple[int, int]:
        old_carry = 1 if self.registers.f & FLAG_C else 0
        return (value >> 1) | (old_carry << 7), value & 0x01

    def _cb_sla(self, value: int) -> tuple[int, int]:
        return (value << 1) & 0xFF, value >> 7

    def _cb_sra(self, value: int) -> tuple[int, int]:
        # El bit 7 (signo) se conserva
        return (value >> 1) | (value & 0x80), value & 0x01

    def _cb_swap(self, value: int) -> tuple[int, int]:
        return ((value << 4) | (value >> 4)) & 0xFF, 0

    def _cb_srl(self, value: int) -> tuple[int, int]:
        return value >> 1, value & 0x01

    def _bit(self, bit: int, value: int) -> None:
        """BIT b: Z = bit negado, N=0, H=1, C se conserva."""
        regs = self.registers
        regs.f = (regs.f & FLAG_C) | FLAG_H | (0 if (value >> bit) & 1 else FLAG_Z)

    def _init_cb_table(self) -> None:
        """
        Genera los 256 handlers del prefijo 0xCB:
        - 0x00-0x3F: RLC, RRC, RL, RR, SLA, SRA, SWAP, SRL
        - 0x40-0x7F: BIT b, r
        - 0x80-0xBF: RES b, r
        - 0xC0-0xFF: SET b, r
        """
        regs = self.registers
        r8_get = self._r8_get
        r8_set = self._r8_set
        shifts = (
            self._cb_rlc,
            self._cb_rrc,
            self._cb_rl,
            self._cb_rr,
            self._cb_sla,
            self._cb_sra,
            self._cb_swap,
            self._cb_srl,
        )

        def make_shift(
            func: Callable[[int], tuple[int, int]], idx: int
        ) -> Callable[[], None]:
            getter = r8_get[idx]
            setter = r8_set[idx]

            def handler() -> None:
                result, carry = func(getter())
                setter(result)
                regs.set_flags(result == 0, False, False, bool(carry))
            return handler

        def make_bit(bit: int, idx: int) -> Callable[[], None]:
            getter = r8_get[idx]

            def handler() -> None:
                self._bit(bit, getter())
            return handler

        def make_res(bit: int, idx: int) -> Callable[[], None]:
            getter = r8_get[idx]
            setter = r8_set[idx]
            mask = ~(1 << bit) & 0xFF

            def handler() -> None:
                setter(getter() & mask)
            return handler

        def make_set(bit: int, idx: int) -> Callable[[], None]:
            getter = r8_get[idx]
            setter = r8_set[idx]
            mask = 1 << bit

            def handler() -> None:
                setter(getter() | mask)
            return handler

        table: list[Callable[[], None]] = []
        for cb_opcode in range(256):
            group = cb_opcode >> 6
            y = (cb_opcode >> 3) & 0x07
            idx = cb_opcode & 0x07
            if group == 0:
                table.append(make_shift(shifts[y], idx))
            elif group == 1:
                table.append(make_bit(y, idx))
            elif group == 2:
                table.append(make_res(y, idx))
            else:
                table.append(make_set(y, idx))
        self._cb_table = table
