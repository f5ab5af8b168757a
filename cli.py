#!/usr/bin/env python3
"""
Token Signal Agent - Command Line Interface

Usage:
    uv run cli.py run
    uv run cli.py run --once
    uv run cli.py analyze ETH
    uv run cli.py signals --format json
"""
from signal_agent.cli.main import run

if __name__ == "__main__":
    run()
