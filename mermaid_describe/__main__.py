"""Allow ``python -m mermaid_describe``."""

import sys

from mermaid_describe.cli import main

if __name__ == "__main__":
    sys.exit(main())
