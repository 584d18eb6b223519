# assocreset/__main__.py
import sys

from assocreset.cli import main

if __name__ == "__main__":
    sys.exit(main())
