"""
Runtime core: normalization, validation, log capture and response assembly.
"""
