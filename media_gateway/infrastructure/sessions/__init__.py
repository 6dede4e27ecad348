"""
Session store integration.

The gateway reads sessions; it never creates or renews them.
"""
