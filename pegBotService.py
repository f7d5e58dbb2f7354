#!/usr/bin/env python3
"""
Thin entrypoint that delegates to pegbot.main.run().
Balance reads, quoting, threshold checks and swaps live under pegbot/.
"""
import sys

from pegbot.main import run


if __name__ == "__main__":
    sys.exit(run())
