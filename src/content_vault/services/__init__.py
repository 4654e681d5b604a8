"""
Entitlement, payment and access services
"""
