"""
CLI entrypoint for `python -m minilang`.
"""

import sys

from .minic import main

if __name__ == "__main__":
    sys.exit(main())
