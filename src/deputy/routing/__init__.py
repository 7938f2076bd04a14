"""Routing — ordered route table with filter chains and sub-router mounts.

Routes are registered during setup and compiled into an immutable
route tree when the root router freezes.
"""
