"""Convenience shim to run the organization discovery workflow."""

from __future__ import annotations

import sys

from src.discovery.runner import main as discovery_main


if __name__ == "__main__":
    discovery_main(sys.argv[1:])
