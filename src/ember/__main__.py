"""Allow ``python -m ember``."""

from ember.cli.app import main

main()
