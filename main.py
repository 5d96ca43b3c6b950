#!/usr/bin/env python3
"""
kbfeed - RSS/Atom to Knowledge Base Ingest
==========================================

Entry point for running from a source checkout (e.g. from cron).

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py run                       # One ingest pass
"""

import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from kbfeed.cli import main

if __name__ == '__main__':
    main()
