"""
DocuHub - Core Package

The embedded core of a document portal: administrators upload PDF files
tagged by filename convention and manage accounts, employees open the
documents assigned to them.

DESIGN PRINCIPLES:
1. The filename is the schema (owner_category_period.pdf)
2. Storage layer is swappable (in-memory for tests, file-backed for use)
3. Fail visibly - storage errors are typed, never swallowed
4. No hidden singletons - everything hangs off an explicit PortalContext
5. Every significant action is auditable
"""

__version__ = "1.0.0"
__author__ = "DocuHub Team"
