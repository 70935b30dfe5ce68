"""
Ink Fluid Sim.

Copyright (c) 2026 Ink Fluid Sim contributors
SPDX-License-Identifier: MIT OR Apache-2.0
"""
import argparse
import math
import time
from dataclasses import fields

from .fluid import DisplayMode, FluidEngine, SimParams
from .imaging import load_background, save_png


def build_parser():
    parser = argparse.ArgumentParser(description="Ink Fluid Sim: headless stable fluids run with a scripted brush stroke")
    parser.add_argument("-W", "--width", type=int, default=128, help="Grid width in cells (default: 128)")
    parser.add_argument("-H", "--height", type=int, default=128, help="Grid height in cells (default: 128)")
    parser.add_argument("-n", "--frames", type=int, default=120, help="Frames to simulate (default: 120)")
    parser.add_argument("-o", "--output", default="fluid.png", help="PNG path for the final frame")
    parser.add_argument("-b", "--background", default=None, help="Background image for image display mode")
    parser.add_argument("--display-scale", type=int, default=4, help="Display pixels per grid cell (default: 4)")
    parser.add_argument("--stroke-frames", type=int, default=60, help="Frames during which the brush is held down")
    parser.add_argument("--arch", default="cpu", help="Taichi backend: cpu, gpu, cuda, vulkan, metal")

    # Add SimParams as arguments automatically
    for f in fields(SimParams):
        arg_name = f.name.replace('_', '-')
        if f.name == "display_mode":
            parser.add_argument(f"--{arg_name}", choices=[m.value for m in DisplayMode], default=f.default.value, help=f.metadata.get('help', ''))
        elif isinstance(f.default, bool):
            parser.add_argument(f"--{arg_name}", type=_parse_bool, default=f.default, help=f.metadata.get('help', ''))
        else:
            parser.add_argument(f"--{arg_name}", type=type(f.default), default=f.default, help=f.metadata.get('help', ''))
    return parser


def _parse_bool(value: str) -> bool:
    return str(value).lower() in ("1", "true", "yes", "on")


def stroke_position(frame: int, total: int, width: int, height: int):
    """Point on a circle around the grid centre for a scripted stroke."""
    ang = 2.0 * math.pi * frame / max(1, total)
    r = 0.25 * min(width, height)
    return (int(width / 2 + r * math.cos(ang)), int(height / 2 + r * math.sin(ang)))


def main(argv=None):
    args = build_parser().parse_args(argv)
    params = SimParams(**{f.name: getattr(args, f.name) for f in fields(SimParams)})

    display = (args.width * args.display_scale, args.height * args.display_scale)
    background = load_background(args.background, display) if args.background else None

    print(f"\n[InkFluidSim] Starting headless run")
    print(f" - Grid:     {args.width}x{args.height}")
    print(f" - Display:  {display[0]}x{display[1]} ({params.display_mode.value})")
    print(f" - Frames:   {args.frames}")
    print(f" - Backend:  {args.arch.upper()}")
    print(f"--------------------------------")

    engine = FluidEngine(args.width, args.height, background=background, params=params,
                         arch=args.arch, display_size=display)

    start = time.time()
    prev = None
    for frame in range(args.frames):
        if frame < args.stroke_frames:
            pos = stroke_position(frame, args.stroke_frames, args.width, args.height)
            delta = (0.0, 0.0) if prev is None else (float(pos[0] - prev[0]), float(pos[1] - prev[1]))
            engine.brush_input.set_grid_state(pos, delta, is_down=True)
            prev = pos
        elif prev is not None:
            engine.brush_input.release()
            prev = None
        engine.advance_frame()

    save_png(engine.render_u8(), args.output)
    elapsed = time.time() - start
    print(f"[InkFluidSim] {args.frames} frames in {elapsed:.2f}s, saved {args.output}")
    engine.check_integrity()
    engine.close()


if __name__ == "__main__":
    main()
