#!/usr/bin/env python3
"""
Record Stream Emitter
=====================

Standalone TCP peer that emits `[timestamp,value]` records, for running
the ingest service locally without the real upstream.

Records are written in randomly sized chunks so frames regularly span
chunk boundaries, and occasional filler bytes are inserted between them.

Usage:
    python scripts/emit_stream.py --port 5555 --rate 50
    python scripts/emit_stream.py --broken-every 20   # inject a bad frame
"""

import argparse
import asyncio
import logging
import random
import time


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("emit_stream")


def make_record(broken: bool = False) -> bytes:
    """Build one wire record; broken records fail validation."""
    if broken:
        return b"[broken]\n"
    return f"[{time.time_ns()},{random.randrange(1_000_000)}]\n".encode("ascii")


async def serve_client(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    rate: float,
    max_chunk: int,
    broken_every: int,
) -> None:
    peer = writer.get_extra_info("peername")
    logger.info(f"Client connected: {peer}")

    pending = bytearray()
    sent = 0
    try:
        while True:
            sent += 1
            broken = broken_every > 0 and sent % broken_every == 0
            pending += make_record(broken)
            if random.random() < 0.1:
                pending += b"\n" * random.randint(1, 3)

            while len(pending) > max_chunk or (pending and random.random() < 0.5):
                size = random.randint(1, max_chunk)
                writer.write(bytes(pending[:size]))
                del pending[:size]
                await writer.drain()

            await asyncio.sleep(1.0 / rate)
    except (ConnectionResetError, BrokenPipeError):
        logger.info(f"Client disconnected: {peer} after {sent} records")
    finally:
        writer.close()


async def main(args: argparse.Namespace) -> None:
    async def handler(reader, writer):
        await serve_client(reader, writer, args.rate, args.max_chunk, args.broken_every)

    server = await asyncio.start_server(handler, args.host, args.port)
    logger.info(f"Emitting records on {args.host}:{args.port} at {args.rate}/s")
    async with server:
        await server.serve_forever()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Emit a [timestamp,value] record stream")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5555)
    parser.add_argument("--rate", type=float, default=20.0, help="Records per second")
    parser.add_argument("--max-chunk", type=int, default=16, help="Largest write in bytes")
    parser.add_argument("--broken-every", type=int, default=0, help="Every Nth record is malformed")
    args = parser.parse_args()

    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        logger.info("Stopped")
