"""
Entry point for running DistroKit CLI as a module.

Usage: python -m distrokit [command] [options]
"""

from distrokit.cli.parser import main

if __name__ == "__main__":
    main()
