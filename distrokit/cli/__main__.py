"""
Entry point for running DistroKit CLI as a module.

Usage: python -m distrokit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
