"""Payload decoding (historical query results and live push snapshots).

Modules here keep wire-level concerns away from the transforms:
- :mod:`records` decodes historical responses into samples, tasks and rows.
- :mod:`live` maps node status pushes onto chart keys.
- :mod:`timestamps` parses the instants both of them carry.
"""
