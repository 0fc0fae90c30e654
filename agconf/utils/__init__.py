"""Filesystem, git, and file discovery helpers."""
