"""Sources — where canonical content comes from and where it lands.

This package provides:
- Resolution: a local checkout or a GitHub repository at a ref
- Targets: the directory layout each supported agent tool reads
"""
