"""Identity domain module.

This domain manages identities (accounts), authentication, role-based
authorization and the subscription/suspension lifecycle of MealTracker users.
"""
