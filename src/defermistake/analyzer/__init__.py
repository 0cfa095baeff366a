"""Syntax-tree analysis: parsing, deferral location, callee resolution, detection."""
