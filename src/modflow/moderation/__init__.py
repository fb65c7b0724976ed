"""
Moderation workflow: pipeline engine, steps, response parsing and decision policy.
"""
