"""
Configuration models: budgets, run statuses and experiment settings.
"""
