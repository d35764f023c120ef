"""
Donations module.

A donation row and the matching increment of the project's raised amount
are written in one database transaction.
"""
