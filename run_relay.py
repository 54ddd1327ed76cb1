#!/usr/bin/env python3
"""
Voice Relay Runner.

Convenience script to run the relay without installing the package.

Usage:
    python run_relay.py

Or run as module:
    python -m voice_relay
"""

import sys
import os

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'python'))

if __name__ == "__main__":
    from voice_relay.__main__ import run
    run()
