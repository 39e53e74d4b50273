"""
Command line entry point: run a chat simulation and print every history.

    causalchat --topics T,T,- --start 0 --seed 7
"""
import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

from .config import ChatConfig
from .group import ChatGroup
from .log import configure_logging

SILENT = {"", "-", "none"}


def parse_topics(value: str) -> List[Optional[str]]:
    """'T,T,-' -> ['T', 'T', None]; '-' marks a peer without a topic."""
    if not value.strip():
        raise argparse.ArgumentTypeError("at least one peer is required")
    return [None if item.strip().lower() in SILENT else item.strip() for item in value.split(",")]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="causalchat",
        description="Simulate a causally ordered group chat and print each peer's history.",
    )
    parser.add_argument("--topics", type=parse_topics, default=parse_topics("T,T,-"),
                        help="comma separated topic per peer, '-' for a silent listener (default: T,T,-)")
    parser.add_argument("--start", type=int, nargs="+", default=[0],
                        help="ids of the peers that open their topic (default: 0)")
    parser.add_argument("--messages", type=int, default=None,
                        help="reply budget per peer")
    parser.add_argument("--seed", type=int, default=None, help="random seed for send order and latency")
    parser.add_argument("--max-latency", type=float, default=None,
                        help="upper bound of the per-send latency in seconds")
    parser.add_argument("--log-level", default=None, help="logging level (default: INFO)")
    parser.add_argument("--check", action="store_true",
                        help="verify every history against causal order and fail on violations")
    return parser


def config_from_args(args: argparse.Namespace) -> ChatConfig:
    """Environment first, command line flags override."""
    config = ChatConfig.from_env()
    overrides = config.to_dict()
    if args.messages is not None:
        overrides["n_messages"] = args.messages
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.max_latency is not None:
        overrides["max_latency"] = args.max_latency
        overrides["min_latency"] = min(overrides["min_latency"], args.max_latency)
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    return ChatConfig.from_dict(overrides)


async def run_chat(topics: Sequence[Optional[str]], config: ChatConfig,
                   starters: Sequence[int], check: bool = False) -> int:
    async with ChatGroup(topics, config) as group:
        await group.start_chat(*starters)
        await group.wait_quiescent()
        for line in await group.print_histories():
            print(line)
        if check:
            violations = group.check_causal_order()
            for violation in violations:
                print(violation, file=sys.stderr)
            return 1 if violations else 0
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))
    configure_logging(config.log_level)

    for peer_id in args.start:
        if not 0 <= peer_id < len(args.topics):
            parser.error(f"--start {peer_id} is not a peer id (group has {len(args.topics)} peers)")

    return asyncio.run(run_chat(args.topics, config, args.start, check=args.check))


if __name__ == "__main__":
    sys.exit(main())
