# irshad_admin/__init__.py
"""
Irshad school administration application package
"""
