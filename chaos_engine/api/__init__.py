"""
API routes for the chaos engine.
"""
