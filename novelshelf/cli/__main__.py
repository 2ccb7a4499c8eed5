"""Allow ``python -m novelshelf.cli`` execution."""

from novelshelf.cli.main import main

main()
