"""Entry point module for executing gitfixture as a Python module.

This module enables running gitfixture via `python -m gitfixture`, which
delegates to the CLI main function.
"""

from gitfixture.cli import main

if __name__ == "__main__":
    main()
