"""Run the yalc command line tool with `python -m yalc`."""

from .tool.yalc import main

if __name__ == "__main__":
    main()
