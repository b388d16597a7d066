"""Main entry point when executing botapi as a package.

This allows running the package using python -m botapi.
"""

from botapi.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
