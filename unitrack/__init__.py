"""
unitrack: personal tracker for German university applications.
"""
