"""
Services used by the engine: hashing, options and the run log.
"""
