#!/usr/bin/env python3
"""
Management script for running CLI commands from a source checkout.
"""

from grc_sync.interfaces.cli.main import main

if __name__ == "__main__":
    main()
