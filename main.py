"""Thin shim for IDEs and direct execution."""

from ipfo_blog.cli import main

if __name__ == "__main__":
    import sys

    sys.exit(main())
