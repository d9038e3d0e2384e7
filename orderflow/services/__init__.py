"""
Routing core services
"""
