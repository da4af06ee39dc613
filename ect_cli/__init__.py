"""
ECT CLI - Command-line entrypoints for content maintenance.

This package contains CLI scripts for:
- Taxonomy term maintenance (list, resolve-or-create, delete)
"""
