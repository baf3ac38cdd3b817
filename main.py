#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
dmgboy - Emulador de Game Boy (DMG)
Punto de entrada principal del emulador
"""

from __future__ import annotations

import argparse
import logging
import sys

from dmgboy.config import AUDIO_FREQ_HZ, AUDIO_SAMPLES, DEFAULT_SCALE, TARGET_FPS, env_flag, env_int
from dmgboy.emulator import Emulator
from dmgboy.errors import EmulatorError
from dmgboy.host import NullAudioSink, NullFrameSink, RecordingFrameSink

# ERROR: Solo errores fatales. Silencio total para máximo rendimiento.
logging.basicConfig(
    level=logging.ERROR,
    format="%(message)s",
    force=True,
)

logger = logging.getLogger("dmgboy")

# Cada cuántos frames se emite el heartbeat en modo verbose
HEARTBEAT_FRAMES = 60


def parse_address(text: str) -> int:
    """Dirección de 16 bits en decimal o con prefijo 0x (argparse type)."""
    try:
        value = int(text, 0)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Dirección no válida: {text!r}") from e
    if not 0 <= value <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"Dirección fuera de rango: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="dmgboy - Emulador de Game Boy (DMG)"
    )
    parser.add_argument(
        "rom",
        type=str,
        help="Ruta al archivo ROM (.gb)",
    )
    parser.add_argument(
        "--scale",
        type=int,
        default=None,
        help=f"Factor de escala de la ventana (por defecto DMGBOY_SCALE o {DEFAULT_SCALE})",
    )
    parser.add_argument(
        "--mute",
        action="store_true",
        help="Desactivar la salida de audio",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Ejecutar sin ventana ni audio (también con DMGBOY_HEADLESS=1)",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=None,
        help="Número de frames a ejecutar (obligatorio en modo headless para terminar)",
    )
    parser.add_argument(
        "--break",
        dest="breakpoint",
        type=parse_address,
        default=None,
        metavar="ADDR",
        help="Detener la emulación cuando PC llegue a ADDR (ej: 0x0150) y mostrar los registros",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Traza por instrucción con mnemónico y registros (también con DMGBOY_TRACE=1)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Activar modo debug con trazas detalladas",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Activar modo verbose (muestra mensajes INFO, incluyendo heartbeat)",
    )
    return parser


def _heartbeat(emulator: Emulator) -> None:
    ppu = emulator.ppu
    logger.info(
        f"Heartbeat frame={emulator.frame_count} | LY={ppu.ly} | Mode={ppu.mode} | "
        f"LCDC={ppu.lcdc:02X} | PC={emulator.cpu.registers.pc:04X}"
    )


def report_breakpoint(emulator: Emulator) -> None:
    """Vuelca el estado de la CPU al detenerse en el breakpoint."""
    regs = emulator.cpu.registers
    logger.warning(
        f"Breakpoint alcanzado en 0x{regs.pc:04X} (frame {emulator.frame_count}): "
        f"AF={regs.get_af():04X} BC={regs.get_bc():04X} DE={regs.get_de():04X} "
        f"HL={regs.get_hl():04X} SP={regs.sp:04X} IME={int(emulator.cpu.ime)} "
        f"TIMA={emulator.timer.read_tima():02X}"
    )


def run_headless(rom_path: str, frames: int | None, **emulator_options) -> Emulator:
    """
    Ejecuta sin ventana ni dispositivo de audio.

    Sin `frames` se ejecuta un solo segundo emulado (60 frames). Se detiene
    antes si se alcanza el breakpoint.
    """
    sink = RecordingFrameSink(keep_history=False) if frames is not None else NullFrameSink()
    emulator = Emulator.from_path(rom_path, frame_sink=sink, audio_sink=NullAudioSink(), **emulator_options)
    total = frames if frames is not None else HEARTBEAT_FRAMES
    for _ in range(total):
        if not emulator.run_frame():
            report_breakpoint(emulator)
            break
        if emulator.frame_count % HEARTBEAT_FRAMES == 0:
            _heartbeat(emulator)
    return emulator


def run_windowed(rom_path: str, scale: int, mute: bool, frames: int | None, **emulator_options) -> Emulator:
    """Bucle principal con ventana Pygame, teclado y audio."""
    # Pygame solo se importa cuando hay ventana
    import pygame

    from dmgboy.apu.output import AudioOutput
    from dmgboy.gpu.renderer import Renderer

    audio_freq = env_int("AUDIO_FREQ", AUDIO_FREQ_HZ)
    audio_samples = env_int("AUDIO_SAMPLES", AUDIO_SAMPLES)

    renderer = Renderer(scale=scale)
    audio = None
    try:
        if mute:
            audio_sink = NullAudioSink()
        else:
            audio = AudioOutput(audio_freq, audio_samples)
            audio_sink = audio

        emulator = Emulator.from_path(
            rom_path,
            frame_sink=renderer,
            audio_sink=audio_sink,
            audio_freq=audio_freq,
            audio_samples=audio_samples,
            **emulator_options,
        )
        clock = pygame.time.Clock()
        running = True
        while running:
            direction_mask, action_mask, running = renderer.poll_input()
            if not running:
                break
            if not emulator.run_frame(direction_mask, action_mask):
                renderer.present()
                report_breakpoint(emulator)
                break
            renderer.present()
            clock.tick(TARGET_FPS)

            if emulator.frame_count % HEARTBEAT_FRAMES == 0:
                pygame.display.set_caption(f"dmgboy - FPS: {clock.get_fps():.1f}")
                _heartbeat(emulator)

            if frames is not None and emulator.frame_count >= frames:
                running = False
        return emulator
    finally:
        if audio is not None:
            audio.close()
        renderer.quit()


def main(argv: list[str] | None = None) -> int:
    """Función principal del emulador"""
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    # La traza va a su propio logger para no arrastrar el resto de DEBUG
    trace = args.trace or env_flag("TRACE")
    if trace:
        logging.getLogger("dmgboy.trace").setLevel(logging.DEBUG)
    if args.breakpoint is not None and logging.getLogger().level > logging.WARNING:
        logging.getLogger().setLevel(logging.WARNING)

    headless = args.headless or env_flag("HEADLESS")
    emulator_options = {"trace": trace, "breakpoint_addr": args.breakpoint}

    try:
        scale = args.scale if args.scale is not None else env_int("SCALE", DEFAULT_SCALE)
        if scale <= 0:
            raise ValueError(f"La escala debe ser positiva, no {scale}")

        if headless:
            emulator = run_headless(args.rom, args.frames, **emulator_options)
        else:
            emulator = run_windowed(args.rom, scale, args.mute, args.frames, **emulator_options)
    except KeyboardInterrupt:
        # Salir limpiamente con Ctrl+C
        return 0
    except (EmulatorError, OSError, ValueError) as e:
        logger.error(f"Error: {e}")
        if args.debug or args.verbose:
            logger.debug("Traceback completo", exc_info=True)
        return 1

    logger.info(
        f"Emulación terminada: {emulator.frame_count} frames, {emulator.get_total_cycles()} T-Cycles"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
