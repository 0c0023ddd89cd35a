#!/usr/bin/env python3
"""
Main entry point for the Feed Gateway when running from a checkout.
This file allows running the gateway directly from the project root.
"""

import sys
from pathlib import Path

# Add the src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))


def main():
    """Run the Feed Gateway server."""
    from feed_gateway.main import main as run_gateway
    
    run_gateway()


if __name__ == "__main__":
    main()
