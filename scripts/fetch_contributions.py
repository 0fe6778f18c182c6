#!/usr/bin/env python3
"""Script to export GitHub contribution activity to CSV.

Thin wrapper around the package CLI for running from a source checkout.
For the installed entry point, use: ghactivity

Environment Variables:
    GITHUB_TOKEN: GitHub API token

Examples:
    # Last month of activity for the token owner
    python scripts/fetch_contributions.py

    # Two users, one combined report
    python scripts/fetch_contributions.py -l octocat,hubot --combine -s 2024-01-01 -e 2024-06-30
"""

import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ghactivity.cli import main


if __name__ == "__main__":
    sys.exit(main())
