#!/usr/bin/env python3
"""
Multi-hop arbitrage CLI entry point.

Usage:
    python3 run_arbitrage.py quote
    python3 run_arbitrage.py --config configs/skale_arbitrage.yaml run --live
"""

import sys

from multihop_arbitrage.cli import main

if __name__ == "__main__":
    sys.exit(main())
