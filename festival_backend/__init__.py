"""
Festival Inquiry Service
========================

Backend for the campus festival administration platform:
1. Inquiry threads between committee staff and project members
2. Assignee / viewer based access control with an audit trail
3. File access checks and signed file access tokens

Identity is supplied by the upstream gateway; no login flow lives here.
"""

__version__ = "1.0.0"
