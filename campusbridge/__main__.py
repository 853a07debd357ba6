"""
Package entry point for Campus Bridge.
"""

import asyncio


def run_main():
    """Run the application until interrupted."""
    from .main import main

    asyncio.run(main())


if __name__ == "__main__":
    run_main()
