"""Reusable data-layer patterns for building verticals.

Each module demonstrates a self-contained pattern that can be adapted
to any domain: global query filters, filtered entity sets, a validating
unit of work, and domain configuration.
"""
