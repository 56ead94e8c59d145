"""
Comparison engine core: tree model, scanning and classification.
"""
