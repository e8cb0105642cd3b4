"""Allow ``python -m lin``."""

from lin.cli import main

main()
