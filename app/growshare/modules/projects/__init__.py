"""
Projects module.

- Public listing (paginated, newest first) and detail with donation history
- Authenticated creation; the owner is the current user
- Raised amount only moves through the donations module
"""
