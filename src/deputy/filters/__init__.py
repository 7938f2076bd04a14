"""Filters — named predicates gating routes.

Registered per router, inherited by sub-routers, combined in
whitespace-separated expressions with ``!`` negation.
"""
