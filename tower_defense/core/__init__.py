"""Simulation primitives (path, tower table, session state and its tick).

Kept free of FastAPI concerns so it can be driven by the message router, the
tick scheduler and tests alike.
"""
