import sys
import argparse
import binascii
import logging
from datetime import datetime, timezone

from . import storage
from .errors import RegionError
from .header import decode_header
from .map_renderer import render_occupancy
from .reader import open_region
from .writer import save_region

logger = logging.getLogger("LinearRegion.cli")


def _fmt_time(ts):
    if ts <= 0:
        return "-"
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    except (OverflowError, OSError, ValueError):
        return str(ts)


def cmd_info(args, config):
    with open(args.file, 'rb') as f:
        data = f.read()
    header = decode_header(data)
    region = open_region(data, lenient=args.lenient)
    sizes = [len(r.raw_bytes) for _, _, r in region.chunks()]

    print(f"File:              {args.file} ({len(data)} bytes)")
    print(f"Version:           {header.version}")
    print(f"Compression level: {header.compression_level}")
    print(f"Compressed size:   {header.compressed_length}")
    print(f"Checksum:          {header.checksum:016x}")
    print(f"Chunks:            {region.count_chunks()} / {header.chunk_count}")
    print(f"Newest timestamp:  {header.newest_timestamp} ({_fmt_time(header.newest_timestamp)})")
    if sizes:
        print(f"Chunk bytes:       {sum(sizes)} (min {min(sizes)}, max {max(sizes)})")
    if region.dropped:
        print(f"Dropped:           {len(region.dropped)} {region.dropped}")
    return 0


def cmd_verify(args, config):
    try:
        region = open_region(args.file, lenient=args.lenient)
    except RegionError as e:
        print(f"{args.file}: {type(e).__name__}: {e}")
        return 1
    if region.dropped:
        print(f"{args.file}: recovered {region.count_chunks()} chunks, dropped {len(region.dropped)}:")
        for x, z in region.dropped:
            print(f"  ({x}, {z})")
        return 1
    print(f"{args.file}: OK ({region.count_chunks()} chunks)")
    return 0


def cmd_grid(args, config):
    region = open_region(args.file, lenient=args.lenient)
    if args.png:
        render_occupancy(region, args.png, scale=args.scale)
        print(f"Wrote {args.png}")
    else:
        print(region.render_grid())
    return 0


def cmd_dump(args, config):
    region = open_region(args.file, lenient=args.lenient)
    record = region.get(args.x, args.z)
    if record is None:
        print(f"Chunk ({args.x}, {args.z}) is empty")
        return 1
    data = record.raw_bytes
    print(f"Chunk ({args.x}, {args.z}): {len(data)} bytes, timestamp {record.timestamp} ({_fmt_time(record.timestamp)})")
    shown = data if args.limit is None else data[:args.limit]
    for off in range(0, len(shown), 16):
        row = shown[off:off + 16]
        text = "".join(chr(b) if 32 <= b < 127 else "." for b in row)
        print(f"{off:08x}  {binascii.hexlify(row, ' ').decode():<47}  {text}")
    return 0


def cmd_recompress(args, config):
    region = open_region(args.file, lenient=args.lenient)
    out = args.output or args.file
    written = save_region(region, out, level=args.level, version=args.version, config=config)
    print(f"Wrote {out} ({written} bytes)")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="linearregion", description="Inspect and rewrite Linear region files")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--log-file", help="Append logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add(name, func, help_text):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("file")
        p.add_argument("--lenient", action="store_true", default=None, help="Skip damaged chunks instead of failing")
        p.set_defaults(func=func)
        return p

    add("info", cmd_info, "Show header fields and chunk statistics")
    add("verify", cmd_verify, "Check the file, exit 1 if anything is wrong")

    p = add("grid", cmd_grid, "Show which chunks are present")
    p.add_argument("--png", help="Render the grid to a PNG instead of printing it")
    p.add_argument("--scale", type=int, default=8, help="Pixels per chunk in the PNG")

    p = add("dump", cmd_dump, "Hex dump of one chunk")
    p.add_argument("x", type=int)
    p.add_argument("z", type=int)
    p.add_argument("--limit", type=int, help="Only show the first N bytes")

    p = add("recompress", cmd_recompress, "Read the file and write it again")
    p.add_argument("--level", type=int, help="zstd compression level")
    p.add_argument("--version", type=int, help="Format version to write")
    p.add_argument("-o", "--output", help="Write here instead of replacing the file")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = storage.load_config(args.config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    level = "DEBUG" if args.verbose else config.get("log_level", "INFO")
    handler = storage.configure_logging(args.log_file or config.get("log_file"), level)
    if args.lenient is None:
        args.lenient = config.get("lenient", False)

    try:
        return args.func(args, config)
    except (RegionError, OSError, ValueError, IndexError) as e:
        logger.error(f"{args.command} {args.file}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        logging.getLogger("LinearRegion").removeHandler(handler)
        handler.close()


if __name__ == "__main__":
    sys.exit(main())
