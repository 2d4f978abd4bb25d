"""
CivicLens - REST API
"""
