"""
Shared models, config, errors and utilities for the sheet context engine
"""
