"""
Implementation of the export engine.
"""
