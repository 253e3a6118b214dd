"""
Demo data generators for the Event Program Engine.
"""
