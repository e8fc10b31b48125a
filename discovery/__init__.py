"""
Candidate discovery engine for the matrimony platform
"""
