"""
LedLink CLI - Command-line interface for driving LED nodes.

Usage:
    ledlink-cli send on --target ledNode07 --sender btnNode07
    ledlink-cli send off --target ledNode07 --sender btnNode07
    ledlink-cli watch btnNode07
"""

__version__ = "1.0.0"
