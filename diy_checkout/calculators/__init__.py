"""
Deterministic kit calculation engine.

Pure Python math. No network, no database.
Given a surface area and the priced pack sizes available per role,
produce an exact Breakdown of line items and quantities.
"""
