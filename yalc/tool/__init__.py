"""Command line tool for yalc."""
