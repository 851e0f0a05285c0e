"""State layer.

The transition function is the only code allowed to produce a new
:class:`~querycycle.models.QueryState`; the merge policy is the only code
allowed to produce new stored options.
"""
