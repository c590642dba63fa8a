"""
API route modules, mounted in whisperdrop.main.
"""
