"""
Workers Module

Background tasks: attachment extraction and stats reporting.
"""
