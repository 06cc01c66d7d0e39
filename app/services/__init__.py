"""
Services package - business rules on top of the repositories
"""
