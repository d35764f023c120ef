"""
Contributions module (food, knowledge, volunteering, other non-monetary support).
"""
