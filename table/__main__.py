import argparse
import asyncio
import logging

from holdem.models import TableConfig
from .server import TableServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Poker round engine table host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--seats", type=int, default=6)
    parser.add_argument("--starting-stack", type=int, default=10_000)
    parser.add_argument("--sb", type=int, default=50)
    parser.add_argument("--bb", type=int, default=100)
    parser.add_argument(
        "--street-delay",
        type=int,
        default=2_000,
        help="Pause before the next street is dealt (milliseconds)",
    )
    parser.add_argument(
        "--finish-delay",
        type=int,
        default=3_000,
        help="Pause showing the winners before the next hand (milliseconds)",
    )
    args = parser.parse_args()

    config = TableConfig(
        seats=args.seats,
        starting_stack=args.starting_stack,
        sb=args.sb,
        bb=args.bb,
        street_delay_ms=args.street_delay,
        finish_delay_ms=args.finish_delay,
    )

    server = TableServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
