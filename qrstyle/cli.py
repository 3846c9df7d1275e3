"""qrstyle CLI: generate, restyle, verify and batch-render styled QR codes."""

import argparse
import sys
import threading
from pathlib import Path

from PIL import Image

from qrstyle.errors import EncodingError
from qrstyle.logging import audit, get_logger, setup_logging
from qrstyle.options import StyleOptions, load_options

log = get_logger("cli")


def _style_from_args(args) -> StyleOptions:
    """Options file first, then any flag the user passed on top."""
    base = load_options(args.options) if args.options else StyleOptions()
    return base.with_overrides(
        dot_style=args.dots,
        corner_style=args.corners,
        corner_radius_percent=args.corner_radius,
        frame_style=args.frame,
        frame_color=args.frame_color,
        frame_width_percent=args.frame_width,
        foreground_color=args.fg,
        background_color=args.bg,
        center_image=args.center_image,
        is_clip_art=True if args.clip_art else None,
        center_image_size_percent=args.center_size,
        module_px=args.module_px,
        size=args.size,
        quiet_zone=args.quiet_zone,
        output_format=args.format,
        verify_scan=True if getattr(args, "verify", False) else None,
        include_text=True if getattr(args, "caption_text", False) else None,
    )


def _print_code(code, output: Path):
    print(f"Generated: {output} ({code.image.width}x{code.image.height})")
    if code.grid is not None:
        print(f"  Version: {code.grid.version}, ECC: {code.ecc_level.letter}")
    if code.frame_size:
        print(f"  Frame: {code.frame_size}px")
    if code.overlay_percent is not None:
        print(f"  Center image: {code.overlay_percent:.1f}% of width")
    if code.finders_ok is not None:
        print(f"  Finder check: {'PASS' if code.finders_ok else 'FAIL'}")
    for err in code.errors:
        print(f"  Degraded: {err}")
    for sr in code.scan_results:
        tag = "PASS" if sr.success else "FAIL"
        print(f"    [{sr.decoder:12s}] {tag} | {sr.decode_time_ms:.1f}ms | {sr.decoded_data or sr.error}")


def cmd_generate(args):
    """Generate one styled code."""
    from qrstyle.pipeline import generate

    options = _style_from_args(args)
    code = generate(args.text, options, args.caption)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(code.data)
    _print_code(code, output)
    return 0 if code.scan_ok is not False else 1


def cmd_restyle(args):
    """Restyle an existing plain code image."""
    from qrstyle.pipeline import restyle

    options = _style_from_args(args)
    code = restyle(Image.open(args.image), options,
                   module_count=args.modules, quiet_zone=args.source_quiet_zone,
                   caption=args.caption)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(code.data)
    _print_code(code, output)
    return 0


def cmd_verify(args):
    """Decode a code image with every available decoder."""
    from qrstyle.verify import verify

    results = verify(Image.open(args.image), expected_data=args.expected)
    for r in results:
        status = "PASS" if r.success else "FAIL"
        print(f"  [{r.decoder:12s}] {status} | {r.decode_time_ms:6.1f}ms | {r.decoded_data or r.error}")
    return 0 if any(r.success for r in results) else 1


def cmd_batch(args):
    """Render one code per non-empty line of a text file."""
    from qrstyle.batch import BatchItem, generate_batch, write_report

    lines = Path(args.input).read_text(encoding="utf-8").splitlines()
    items = [BatchItem(text=line.strip()) for line in lines if line.strip()]
    options = _style_from_args(args)

    cancel = threading.Event()
    try:
        report = generate_batch(items, options, workers=args.workers, cancel_event=cancel)
    except KeyboardInterrupt:
        cancel.set()
        print("Cancelled.")
        return 130

    written = write_report(report, args.out_dir, options.output_format)
    print(f"Batch: {report.succeeded} generated, {report.failed} failed -> {args.out_dir}")
    for result in report.results:
        if result.error:
            print(f"  FAIL {result.item.text[:60]}: {result.error}")
    log.info("Wrote %d files", len(written))
    return 0 if report.failed == 0 else 1


def cmd_clipart(args):
    """List bundled clip art."""
    from qrstyle.clipart import CLIPART

    for name in sorted(CLIPART):
        print(f"  clipart:{name}")
    return 0


def cmd_serve(args):
    """Start the HTTP preview service."""
    from qrstyle.server import create_app

    app = create_app(_style_from_args(args))
    print(f"Serving on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def _add_style_args(p):
    g = p.add_argument_group("style")
    g.add_argument("--options", default=None, help="JSON file with style options")
    g.add_argument("--dots", default=None, choices=["square", "circular", "rounded"], help="Module shape")
    g.add_argument("--corners", default=None, choices=["square", "rounded", "extra_rounded"],
                   help="Finder corner style")
    g.add_argument("--corner-radius", type=float, default=None, help="Finder corner radius, 1-50 (%% of a module)")
    g.add_argument("--frame", default=None, choices=["none", "simple", "double"], help="Border frame")
    g.add_argument("--frame-color", default=None, help="Frame colour (defaults to foreground)")
    g.add_argument("--frame-width", type=float, default=None, help="Frame width, 1-10 (%% of code width)")
    g.add_argument("--fg", default=None, help="Foreground colour, e.g. '#1a1a1a'")
    g.add_argument("--bg", default=None, help="Background colour")
    g.add_argument("--center-image", default=None, help="Logo path, data URI or clipart:<name>")
    g.add_argument("--clip-art", action="store_true", help="Treat the center image as clip art")
    g.add_argument("--center-size", type=float, default=None, help="Center image size, %% of width")
    g.add_argument("--module-px", type=int, default=None, help="Pixels per module")
    g.add_argument("--size", type=int, default=None, help="Symbol width in pixels (sets pixels per module)")
    g.add_argument("--quiet-zone", type=int, default=None, help="Quiet zone in modules")
    g.add_argument("--format", default=None, choices=["png", "jpeg", "webp"], help="Output format")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrstyle", description="Styled, scannable QR codes")
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--json-logs", action="store_true", help="JSON logs on the console too")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    p_gen = sub.add_parser("generate", help="Generate a styled QR code")
    p_gen.add_argument("text", help="URL or text to encode")
    p_gen.add_argument("-o", "--output", default="output/qr.png", help="Output file path")
    p_gen.add_argument("--caption", default=None, help="Caption below the code")
    p_gen.add_argument("--caption-text", action="store_true", help="Use the encoded text as caption")
    p_gen.add_argument("--verify", action="store_true", help="Decode the result to check it scans")
    _add_style_args(p_gen)

    p_re = sub.add_parser("restyle", help="Restyle an existing plain QR image")
    p_re.add_argument("image", help="Path to a plain QR image")
    p_re.add_argument("-o", "--output", default="output/restyled.png", help="Output file path")
    p_re.add_argument("--modules", type=int, default=None, help="Module count N of the source, if known")
    p_re.add_argument("--source-quiet-zone", type=int, default=None, help="Quiet zone of the source, in modules")
    p_re.add_argument("--caption", default=None, help="Caption below the code")
    _add_style_args(p_re)

    p_ver = sub.add_parser("verify", help="Verify a QR code image scans")
    p_ver.add_argument("image", help="Path to QR code image")
    p_ver.add_argument("--expected", default=None, help="Expected decoded data")

    p_batch = sub.add_parser("batch", help="One code per line of a text file")
    p_batch.add_argument("input", help="Text file, one payload per line")
    p_batch.add_argument("-d", "--out-dir", default="output/batch", help="Output directory")
    p_batch.add_argument("-w", "--workers", type=int, default=4, help="Parallel workers")
    p_batch.add_argument("--caption-text", action="store_true", help="Caption each code with its text")
    _add_style_args(p_batch)

    sub.add_parser("clipart", help="List bundled clip art")

    p_serve = sub.add_parser("serve", help="Start the HTTP preview service")
    p_serve.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    p_serve.add_argument("--port", type=int, default=8080, help="Port to listen on")
    p_serve.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    _add_style_args(p_serve)

    return parser


COMMANDS = {
    "generate": cmd_generate,
    "restyle": cmd_restyle,
    "verify": cmd_verify,
    "batch": cmd_batch,
    "clipart": cmd_clipart,
    "serve": cmd_serve,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else "INFO", log_file=args.log_file,
                  json_format=args.json_logs)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        code = COMMANDS[args.command](args)
    except EncodingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 2
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 2
    audit("cli.done", logger=log, command=args.command, exit_code=code)
    return code


if __name__ == "__main__":
    sys.exit(main())
