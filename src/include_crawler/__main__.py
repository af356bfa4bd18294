# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Entry point for running the crawler as a module: python -m include_crawler"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
