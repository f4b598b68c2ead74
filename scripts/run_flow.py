#!/usr/bin/env python3
"""
Run a flow definition from a JSON file.

The file holds the same body the POST /api/v1/flow-runs endpoint accepts:
nodes, edges, variables, secrets, flow_id and context.

Usage:
    python -m scripts.run_flow path/to/flow.json
    python -m scripts.run_flow path/to/flow.json --parallel --timeout 30
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add the project root to the path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from dotenv import load_dotenv
load_dotenv()

from flowrun.flow_engine.config import EngineConfig
from flowrun.flow_engine.exceptions import FlowEngineError
from flowrun.flow_engine.executor import run_flow
from flowrun.flow_engine.models import FlowRunInput


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a flow definition")
    parser.add_argument('flow_file', help="JSON file with nodes and edges")
    parser.add_argument('--parallel', action='store_true', help="Run independent nodes concurrently")
    parser.add_argument('--timeout', type=float, default=None, help="Per-node timeout in seconds (0 disables)")
    parser.add_argument('--log-level', default='INFO')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    with open(args.flow_file, encoding='utf-8') as f:
        flow = FlowRunInput.from_dict(json.load(f))

    config = EngineConfig()
    if args.parallel:
        config.parallel = True
    if args.timeout is not None:
        config.node_timeout = args.timeout

    try:
        result = asyncio.run(run_flow(flow, config=config))
    except FlowEngineError as e:
        print(f"❌ Invalid flow: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.succeeded else 1


if __name__ == '__main__':
    sys.exit(main())
