"""Security tests for DocFlow

This module contains security-focused tests including:
- LIKE/SQL injection through search parameters
- Authentication bypass attempts
- Tenant escape/isolation attacks
"""
