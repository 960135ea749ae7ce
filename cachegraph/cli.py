# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph Command Line Interface

    cachegraph put --cache-dir DIR KEY FILE
    cachegraph inspect --cache-dir DIR TOPOLOGY_KEY WEIGHTS_KEY
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cachegraph",
        description="CacheGraph - cached graph model runtime",
    )

    parser.add_argument(
        "--version",
        "-v",
        action="store_true",
        help="Show version information",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    put_parser = subparsers.add_parser(
        "put",
        help="Store a file in the local artifact cache",
    )
    put_parser.add_argument("key", help="Cache key to store the file under")
    put_parser.add_argument("file", type=Path, help="File to store")
    put_parser.add_argument(
        "--cache-dir",
        default=None,
        help="Cache directory (default: $CACHEGRAPH_CACHE_DIR or ~/.cache/cachegraph)",
    )

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Load a cached model and print its interface",
    )
    inspect_parser.add_argument("topology_key", help="Cache key of model.json")
    inspect_parser.add_argument("weights_key", help="Cache key of the weight blob")
    inspect_parser.add_argument(
        "--cache-dir",
        default=None,
        help="Cache directory (default: $CACHEGRAPH_CACHE_DIR or ~/.cache/cachegraph)",
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for CacheGraph CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from cachegraph import __version__

        print(f"CacheGraph v{__version__}")
        return 0

    if args.command == "put":
        return _run(_put(args))

    if args.command == "inspect":
        return _run(_inspect(args))

    parser.print_help()
    return 0


def _run(coro) -> int:
    from cachegraph.errors import CacheGraphError

    try:
        asyncio.run(coro)
        return 0
    except CacheGraphError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _options(args):
    from cachegraph.config import LoadOptions

    options = LoadOptions.from_env()
    if args.cache_dir:
        options.cache_dir = args.cache_dir
    return options


async def _put(args) -> None:
    cache = _options(args).resolve_cache()
    data = args.file.read_bytes()
    await cache.set(args.key, data)
    print(f"Stored {len(data)} bytes under '{args.key}' in {cache.name}")


async def _inspect(args) -> None:
    from cachegraph.models import load_graph_model

    model = await load_graph_model(args.topology_key, args.weights_key, _options(args))
    try:
        print("=" * 50)
        print(f"Model: {args.topology_key}")
        print("=" * 50)
        print(f"Version: {model.model_version}")
        for info in model.inputs:
            print(f"Input:  {info.tensor_name} {info.shape} {info.dtype.value}")
        for info in model.outputs:
            print(f"Output: {info.tensor_name} {info.shape} {info.dtype.value}")
        print(f"Weights: {len(model.weights)}")
        print(f"Initializer: {'yes' if model.initializer is not None else 'no'}")
        print(f"Signature: {'yes' if model.model_signature else 'no'}")
        print("=" * 50)
    finally:
        model.dispose()


if __name__ == "__main__":
    sys.exit(main())
