"""Content primitives: frontmatter, hashing, managed metadata, marker blocks."""
