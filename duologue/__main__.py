"""
Entry point for running the dialogue feed as a module:
    python -m duologue
"""

import asyncio
from .main import main

if __name__ == "__main__":
    asyncio.run(main())
