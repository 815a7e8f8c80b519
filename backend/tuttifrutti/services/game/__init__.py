"""Tutti Frutti rules: who goes where, what changes a round, how points add up.

``flow`` decides views, ``lifecycle`` changes rows, ``ranking`` reads totals.
"""
