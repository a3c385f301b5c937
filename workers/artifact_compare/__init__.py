"""
artifact_compare — offline comparison of two packaged wasm builds.

Diagnostic only: reads two artifacts/<arch>/<timestamp>/ directories and
reports hash, disassembly and manifest differences.  Never writes to them.
"""

__version__ = "0.1.0"
PACKAGE_NAME = "artifact_compare"
REPORT_VERSION = "v1"
